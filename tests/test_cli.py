from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

import pytest
from typer.testing import CliRunner

import dfox.cli as cli
from dfox import __version__
from dfox.logging import setup_logging
from dfox.settings import load_settings


class _Settings:
    def __init__(self, log_dir: Path):
        self.DFOX_LOG_DIR = log_dir
        self.DFOX_LOG_LEVEL = "INFO"
        self.DFOX_LOG_BACKUP_COUNT = 1
        self.DFOX_DEBUG_BUFFER = 50
        self.DFOX_CONNECT_TIMEOUT = 2
        self.DFOX_DEFAULT_HOST = "localhost"
        self.DFOX_DEFAULT_USER = None


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "shop.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT NOT NULL);
        CREATE TABLE orders (id INTEGER PRIMARY KEY, user_id INTEGER, total REAL DEFAULT 0);
        INSERT INTO users (email) VALUES ('a@example.com'), ('b@example.com');
        """
    )
    conn.commit()
    conn.close()

    monkeypatch.setattr(cli, "load_settings", lambda: _Settings(tmp_path / "logs"))
    return path


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_cli_version(runner):
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_engines(runner):
    result = runner.invoke(cli.app, ["engines"])
    assert result.exit_code == 0
    assert "PostgreSQL" in result.output
    assert "3306" in result.output


def test_cli_tables_json(runner, db_path):
    result = runner.invoke(cli.app, ["tables", "-e", "sqlite", "-d", str(db_path), "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [
        {"name": "orders", "kind": "table"},
        {"name": "users", "kind": "table"},
    ]


def test_cli_databases_json(runner, db_path):
    result = runner.invoke(cli.app, ["databases", "-e", "sqlite", "-d", str(db_path), "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)[0]["name"] == "main"


def test_cli_describe_json(runner, db_path):
    result = runner.invoke(cli.app, ["describe", "orders", "-e", "sqlite", "-d", str(db_path), "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["table"] == "orders"
    assert [c["name"] for c in payload["columns"]] == ["id", "user_id", "total"]
    assert payload["columns"][0]["primary_key"] is True
    assert payload["columns"][2]["default"] == "0"


def test_cli_describe_tree(runner, db_path):
    result = runner.invoke(cli.app, ["describe", "users", "-e", "sqlite", "-d", str(db_path)])
    assert result.exit_code == 0, result.output
    assert "email: TEXT (NOT NULL)" in result.output


def test_cli_query_json(runner, db_path):
    result = runner.invoke(
        cli.app,
        ["query", "SELECT id, email FROM users ORDER BY id", "-e", "sqlite", "-d", str(db_path), "--json"],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["columns"] == ["id", "email"]
    assert payload["rows"] == [["1", "a@example.com"], ["2", "b@example.com"]]
    assert payload["row_count"] == 2


def test_cli_query_statement(runner, db_path):
    result = runner.invoke(cli.app, ["sql", "DELETE FROM users", "-e", "sqlite", "-d", str(db_path)])
    assert result.exit_code == 0, result.output
    assert "2 row(s) affected" in result.output


def test_cli_query_error_exits_1(runner, db_path):
    result = runner.invoke(cli.app, ["query", "SELEC 1", "-e", "sqlite", "-d", str(db_path)])
    assert result.exit_code == 1
    assert "Query failed" in result.output
    assert "syntax" in result.output


def test_cli_unknown_table_exits_1(runner, db_path):
    result = runner.invoke(cli.app, ["describe", "ghosts", "-e", "sqlite", "-d", str(db_path)])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_cli_missing_file_exits_1(runner, db_path, tmp_path):
    result = runner.invoke(cli.app, ["tables", "-e", "sqlite", "-d", str(tmp_path / "missing.db")])
    assert result.exit_code == 1
    assert "Connection failed" in result.output
    assert not (tmp_path / "missing.db").exists()


# ═══════════════════════════════════════════════════════════════════════════════
# SETTINGS & LOGGING
# ═══════════════════════════════════════════════════════════════════════════════

def test_settings_from_environment(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DFOX_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("DFOX_EXPORT_PATH", str(tmp_path / "out" / "rows.tsv"))
    monkeypatch.setenv("DFOX_PAGE_SIZE", "7")

    s = load_settings()
    assert s.DFOX_PAGE_SIZE == 7
    assert s.DFOX_LOG_DIR == tmp_path / "logs"
    assert (tmp_path / "logs").is_dir()
    assert (tmp_path / "out").is_dir()


def test_setup_logging_writes_rotating_file(tmp_path: Path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        log_file = setup_logging(_Settings(tmp_path / "logs"))
        logging.getLogger("dfox.test").info("hello from test")
        for handler in root.handlers:
            handler.flush()
        assert log_file == tmp_path / "logs" / "dfox.log"
        text = log_file.read_text(encoding="utf-8")
        assert "dfox logging enabled" in text
        assert "hello from test" in text
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)
