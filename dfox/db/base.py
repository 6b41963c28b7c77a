"""The capability contract every engine client implements.

Clients are stateless strategies: all connection state lives in the
`ClientHandle` they return from `connect`, and the handle is owned by
`ConnectionSession`.
"""
from __future__ import annotations

import base64
import json
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Sequence

from ..errors import ConnectError, ConnectErrorKind, QueryError, QueryErrorKind
from ..logging import Stopwatch
from ..models import (
    ClientHandle,
    ConnectionParams,
    DatabaseSummary,
    EngineKind,
    QueryResult,
    TableSchema,
    TableSummary,
)

logger = logging.getLogger(__name__)

NULL_TEXT = "NULL"


def format_cell(value: Any) -> str:
    """Stringify one cell for display."""
    if value is None:
        return NULL_TEXT
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)


def clean_statement(sql: str) -> str:
    """Trim whitespace and trailing semicolons."""
    return (sql or "").strip().rstrip(";").strip()


def as_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return "" if value is None else str(value)


def switch_error(err: ConnectError) -> QueryError:
    """Map a failed reconnect (database switch) onto the query taxonomy.

    The previous connection is still usable, so nothing maps to
    CONNECTION_LOST here.
    """
    kind = {
        ConnectErrorKind.AUTH_REJECTED: QueryErrorKind.PERMISSION,
        ConnectErrorKind.TIMEOUT: QueryErrorKind.TIMEOUT,
    }.get(err.kind, QueryErrorKind.OTHER)
    return QueryError(kind, err.message)


class DatabaseClient(ABC):
    """Engine-specific implementation of the database capability set."""

    engine: EngineKind
    # Driver exception base classes translated at this boundary.
    driver_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, connect_timeout: int = 10):
        self.connect_timeout = connect_timeout

    # ── connection lifecycle ───────────────────────────────────────────

    def connect(self, params: ConnectionParams) -> ClientHandle:
        try:
            return self._open(params)
        except ConnectError:
            raise
        except self.driver_errors as exc:
            raise self.translate_connect_error(exc) from exc
        except TimeoutError as exc:
            raise ConnectError(ConnectErrorKind.TIMEOUT, str(exc) or "Connection timed out.") from exc
        except OSError as exc:
            raise ConnectError(ConnectErrorKind.UNREACHABLE, str(exc)) from exc

    def disconnect(self, handle: ClientHandle) -> None:
        """Best-effort close. Never raises."""
        try:
            handle.connection.close()
        except Exception as exc:
            logger.warning("Error closing %s connection: %s", self.engine.label, exc)

    def interrupt(self, handle: ClientHandle) -> None:
        """Best-effort cancel of the statement in flight. Never raises."""
        logger.info("%s does not support interrupting a running statement", self.engine.label)

    # ── capability set ─────────────────────────────────────────────────

    @abstractmethod
    def _open(self, params: ConnectionParams) -> ClientHandle:
        """Open a driver connection and wrap it in a handle."""

    @abstractmethod
    def list_databases(self, handle: ClientHandle) -> tuple[DatabaseSummary, ...]:
        ...

    @abstractmethod
    def use_database(self, handle: ClientHandle, name: str) -> None:
        ...

    @abstractmethod
    def list_tables(self, handle: ClientHandle) -> tuple[TableSummary, ...]:
        ...

    @abstractmethod
    def describe_table(self, handle: ClientHandle, name: str) -> TableSchema:
        ...

    def execute_query(self, handle: ClientHandle, sql: str) -> QueryResult:
        """Run one statement and stringify whatever it returns."""
        statement = clean_statement(sql)
        if not statement:
            raise QueryError(QueryErrorKind.OTHER, "Empty statement.")

        with Stopwatch() as sw:
            columns, rows, count = self._run(handle, statement)

        if not columns:
            message = f"Statement executed, {count} row(s) affected."
        elif not rows:
            message = "Query returned no results."
        else:
            message = ""
        return QueryResult(
            columns=columns,
            rows=rows,
            row_count=len(rows) if columns else count,
            elapsed=sw.elapsed,
            message=message,
            statement=statement,
        )

    # ── translation ────────────────────────────────────────────────────

    @abstractmethod
    def translate_connect_error(self, exc: BaseException) -> ConnectError:
        ...

    @abstractmethod
    def translate_query_error(self, exc: BaseException) -> QueryError:
        ...

    def quote_identifier(self, name: str) -> str:
        return self.engine.quote(name)

    # ── helpers ────────────────────────────────────────────────────────

    def _run(
        self, handle: ClientHandle, statement: str, params: Sequence[Any] | None = None
    ) -> tuple[tuple[str, ...], tuple[tuple[str, ...], ...], int]:
        """Execute and fetch; returns (columns, rows, rowcount)."""
        try:
            cursor = handle.connection.cursor()
            try:
                if params is None:
                    cursor.execute(statement)
                else:
                    cursor.execute(statement, params)
                if cursor.description is None:
                    return (), (), max(cursor.rowcount or 0, 0)
                columns = tuple(as_text(d[0]) for d in cursor.description)
                rows = tuple(tuple(format_cell(v) for v in row) for row in cursor.fetchall())
                return columns, rows, len(rows)
            finally:
                cursor.close()
        except self.driver_errors as exc:
            raise self.translate_query_error(exc) from exc

    def _fetch(
        self, handle: ClientHandle, statement: str, params: Sequence[Any] | None = None
    ) -> list[tuple[Any, ...]]:
        """Execute a metadata query and return raw driver rows."""
        try:
            cursor = handle.connection.cursor()
            try:
                if params is None:
                    cursor.execute(statement)
                else:
                    cursor.execute(statement, params)
                return [tuple(r) for r in cursor.fetchall()]
            finally:
                cursor.close()
        except self.driver_errors as exc:
            raise self.translate_query_error(exc) from exc

    @staticmethod
    def _table_not_found(name: str) -> QueryError:
        return QueryError(QueryErrorKind.OTHER, f"Table {name!r} not found.")


def message_has(message: str, needles: Iterable[str]) -> bool:
    low = message.lower()
    return any(n in low for n in needles)
