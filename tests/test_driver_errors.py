"""Driver exception translation for the Postgres and MySQL clients.

No servers are needed: driver exceptions are built directly and connections
are MagicMock stand-ins.
"""
from __future__ import annotations

from unittest.mock import MagicMock

import psycopg
import pymysql
import pytest

from dfox.db.mysql import MySQLClient
from dfox.db.postgres import PostgresClient, _server_version
from dfox.errors import ConnectError, ConnectErrorKind, QueryError, QueryErrorKind
from dfox.models import ClientHandle, ConnectionParams, EngineKind


def _pg_error(sqlstate: str, message: str) -> psycopg.Error:
    return psycopg.errors.lookup(sqlstate)(message)


# ═══════════════════════════════════════════════════════════════════════════════
# POSTGRES
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize(
    "sqlstate, kind",
    [
        ("42601", QueryErrorKind.SYNTAX),
        ("42501", QueryErrorKind.PERMISSION),
        ("57014", QueryErrorKind.TIMEOUT),
        ("57P01", QueryErrorKind.CONNECTION_LOST),
        ("08006", QueryErrorKind.CONNECTION_LOST),
        ("22012", QueryErrorKind.OTHER),
        ("42P01", QueryErrorKind.OTHER),
    ],
)
def test_postgres_query_errors_by_sqlstate(sqlstate, kind):
    err = PostgresClient().translate_query_error(_pg_error(sqlstate, "boom"))
    assert err.kind == kind
    assert err.message == "boom"


def test_postgres_client_side_failure_is_connection_lost():
    exc = psycopg.OperationalError("the connection is lost")
    assert PostgresClient().translate_query_error(exc).kind == QueryErrorKind.CONNECTION_LOST


@pytest.mark.parametrize(
    "message, kind",
    [
        ('connection failed: FATAL:  password authentication failed for user "app"', ConnectErrorKind.AUTH_REJECTED),
        ("connection timeout expired", ConnectErrorKind.TIMEOUT),
        ("connection failed: Connection refused", ConnectErrorKind.UNREACHABLE),
        ("FATAL:  unsupported frontend protocol 1234.5679", ConnectErrorKind.PROTOCOL_MISMATCH),
        (
            'FATAL:  no pg_hba.conf entry for host "10.0.0.5", user "app", database "app_db", SSL off',
            ConnectErrorKind.AUTH_REJECTED,
        ),
        ("server does not support SSL, but SSL was required", ConnectErrorKind.PROTOCOL_MISMATCH),
    ],
)
def test_postgres_connect_errors(message, kind):
    assert PostgresClient().translate_connect_error(psycopg.OperationalError(message)).kind == kind


def test_postgres_connect_translates_driver_errors(monkeypatch):
    def refuse(**kwargs):
        raise psycopg.OperationalError("connection failed: Connection refused")

    monkeypatch.setattr(psycopg, "connect", refuse)
    with pytest.raises(ConnectError) as exc:
        PostgresClient().connect(ConnectionParams(host="db", port=5432, username="app"))
    assert exc.value.kind == ConnectErrorKind.UNREACHABLE


def test_postgres_use_same_database_is_noop():
    conn = MagicMock()
    handle = ClientHandle(EngineKind.POSTGRES, conn, ConnectionParams(), database="app_db")
    PostgresClient().use_database(handle, "app_db")
    assert handle.connection is conn
    conn.close.assert_not_called()


def test_postgres_describe_maps_rows():
    conn = MagicMock()
    conn.cursor.return_value.fetchall.return_value = [
        ("id", "integer", "NO", "nextval('users_id_seq'::regclass)", True),
        ("email", "text", "YES", None, False),
    ]
    handle = ClientHandle(EngineKind.POSTGRES, conn, ConnectionParams(), database="app_db")
    schema = PostgresClient().describe_table(handle, "users")
    assert [c.as_tuple() for c in schema.columns] == [("id", "integer", False), ("email", "text", True)]
    assert schema.columns[0].primary_key
    assert schema.columns[0].default == "nextval('users_id_seq'::regclass)"


def test_postgres_server_version():
    assert _server_version(160002) == "16.2"
    assert _server_version(90624) == "9.6.24"


# ═══════════════════════════════════════════════════════════════════════════════
# MYSQL
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize(
    "exc, kind",
    [
        (pymysql.err.ProgrammingError(1064, "You have an error in your SQL syntax"), QueryErrorKind.SYNTAX),
        (pymysql.err.OperationalError(1142, "SELECT command denied"), QueryErrorKind.PERMISSION),
        (pymysql.err.OperationalError(1317, "Query execution was interrupted"), QueryErrorKind.TIMEOUT),
        (pymysql.err.OperationalError(2013, "Lost connection to MySQL server during query"), QueryErrorKind.CONNECTION_LOST),
        (pymysql.err.InterfaceError(0, ""), QueryErrorKind.CONNECTION_LOST),
        (pymysql.err.DataError(1365, "Division by 0"), QueryErrorKind.OTHER),
    ],
)
def test_mysql_query_errors(exc, kind):
    assert MySQLClient().translate_query_error(exc).kind == kind


def test_mysql_query_error_message_is_server_text():
    err = MySQLClient().translate_query_error(pymysql.err.ProgrammingError(1146, "Table 'app.ghosts' doesn't exist"))
    assert err.message == "Table 'app.ghosts' doesn't exist"


@pytest.mark.parametrize(
    "exc, kind",
    [
        (pymysql.err.OperationalError(1045, "Access denied for user 'app'@'%'"), ConnectErrorKind.AUTH_REJECTED),
        (pymysql.err.OperationalError(2003, "Can't connect to MySQL server on 'db' (timed out)"), ConnectErrorKind.TIMEOUT),
        (pymysql.err.OperationalError(2003, "Can't connect to MySQL server on 'db' ([Errno 111] Connection refused)"), ConnectErrorKind.UNREACHABLE),
        (pymysql.err.OperationalError(2059, "Authentication plugin not supported"), ConnectErrorKind.PROTOCOL_MISMATCH),
    ],
)
def test_mysql_connect_errors(exc, kind):
    assert MySQLClient().translate_connect_error(exc).kind == kind


def test_mysql_missing_auth_plugin_is_protocol_mismatch(monkeypatch):
    def needs_plugin(**kwargs):
        raise RuntimeError("'cryptography' package is required for sha256_password or caching_sha2_password auth methods")

    monkeypatch.setattr(pymysql, "connect", needs_plugin)
    with pytest.raises(ConnectError) as exc:
        MySQLClient().connect(ConnectionParams(host="db", port=3306, username="app"))
    assert exc.value.kind == ConnectErrorKind.PROTOCOL_MISMATCH


def test_mysql_describe_maps_show_columns():
    conn = MagicMock()
    conn.cursor.return_value.fetchall.return_value = [
        ("id", "int", "NO", "PRI", None, "auto_increment"),
        ("email", b"varchar(255)", "YES", "", None, ""),
    ]
    handle = ClientHandle(EngineKind.MYSQL, conn, ConnectionParams(), database="app_db")
    schema = MySQLClient().describe_table(handle, "users")
    assert [c.as_tuple() for c in schema.columns] == [("id", "int", False), ("email", "varchar(255)", True)]
    assert schema.columns[0].primary_key
    conn.cursor.return_value.execute.assert_called_once_with("SHOW COLUMNS FROM `users`")


def test_mysql_use_database_failure_is_query_error():
    conn = MagicMock()
    conn.select_db.side_effect = pymysql.err.OperationalError(1049, "Unknown database 'ghosts'")
    handle = ClientHandle(EngineKind.MYSQL, conn, ConnectionParams(), database="app_db")
    with pytest.raises(QueryError) as exc:
        MySQLClient().use_database(handle, "ghosts")
    assert exc.value.kind == QueryErrorKind.OTHER
    assert handle.database == "app_db"
