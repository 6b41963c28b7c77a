from __future__ import annotations

import os
import sys
import threading

import pytest


def _ensure_project_root_on_path() -> None:
    # When running via the venv's pytest entrypoint, the CWD is not guaranteed to
    # be on sys.path. Ensure the repository root (containing `dfox/`) is importable.
    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_path()

from dfox.db.base import DatabaseClient  # noqa: E402
from dfox.errors import ConnectError, ConnectErrorKind, QueryError, QueryErrorKind  # noqa: E402
from dfox.logging import DebugLog  # noqa: E402
from dfox.models import (  # noqa: E402
    ClientHandle,
    ColumnDescriptor,
    ConnectionParams,
    DatabaseSummary,
    EngineKind,
    QueryResult,
    TableSchema,
    TableSummary,
)
from dfox.session import ConnectionSession  # noqa: E402


class FakeDriverError(Exception):
    pass


class FakeConnection:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class FakeClient(DatabaseClient):
    """In-memory server: `catalog` maps database -> table -> TableSchema."""

    engine = EngineKind.POSTGRES
    driver_errors = (FakeDriverError,)

    def __init__(self, catalog, credentials=("app", "secret"), **kwargs):
        super().__init__(**kwargs)
        self.catalog = catalog
        self.credentials = credentials
        # statement -> QueryError raised by execute_query
        self.query_errors: dict[str, QueryError] = {}
        # When set, execute_query blocks until the gate opens.
        self.gate: threading.Event | None = None
        self.started = threading.Event()
        self.interrupted = threading.Event()
        self.opened: list[ClientHandle] = []

    def _open(self, params: ConnectionParams) -> ClientHandle:
        if (params.username, params.secret) != self.credentials:
            raise FakeDriverError(f'password authentication failed for user "{params.username}"')
        handle = ClientHandle(
            engine=self.engine,
            connection=FakeConnection(),
            params=params,
            database=params.database or "postgres",
            server_version="16.2",
        )
        self.opened.append(handle)
        return handle

    def interrupt(self, handle: ClientHandle) -> None:
        self.interrupted.set()

    def list_databases(self, handle):
        return tuple(DatabaseSummary(name=name) for name in sorted(self.catalog))

    def use_database(self, handle, name):
        if name not in self.catalog:
            raise QueryError(QueryErrorKind.OTHER, f'database "{name}" does not exist')
        handle.database = name

    def list_tables(self, handle):
        return tuple(TableSummary(name=name) for name in self.catalog.get(handle.database, {}))

    def describe_table(self, handle, name):
        tables = self.catalog.get(handle.database, {})
        if name not in tables:
            raise self._table_not_found(name)
        return tables[name]

    def execute_query(self, handle, sql):
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)
        if sql in self.query_errors:
            raise self.query_errors[sql]
        return QueryResult(columns=("?column?",), rows=(("1",),), row_count=1, statement=sql)

    def translate_connect_error(self, exc):
        return ConnectError(ConnectErrorKind.AUTH_REJECTED, str(exc))

    def translate_query_error(self, exc):
        return QueryError(QueryErrorKind.OTHER, str(exc))


USERS = TableSchema(
    table_name="users",
    columns=(
        ColumnDescriptor("id", "integer", nullable=False, primary_key=True),
        ColumnDescriptor("email", "text", nullable=False),
    ),
)
ORDERS = TableSchema(
    table_name="orders",
    columns=(
        ColumnDescriptor("id", "integer", nullable=False, primary_key=True),
        ColumnDescriptor("user_id", "integer", nullable=False),
        ColumnDescriptor("total", "numeric"),
    ),
)
LOGS = TableSchema(table_name="logs", columns=(ColumnDescriptor("line", "text"),))


@pytest.fixture
def catalog():
    """Two databases; only app_db has the users/orders tables."""
    return {
        "app_db": {"users": USERS, "orders": ORDERS},
        "test_db": {"logs": LOGS},
    }


@pytest.fixture
def fake_client(catalog):
    return FakeClient(catalog)


@pytest.fixture
def debug_log():
    return DebugLog(capacity=100)


@pytest.fixture
def session(fake_client, debug_log):
    return ConnectionSession(debug_log=debug_log, client_factory=lambda engine: fake_client)


@pytest.fixture
def good_params():
    return ConnectionParams(host="db.local", port=5432, username="app", secret="secret")
