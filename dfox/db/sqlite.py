from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from ..errors import ConnectError, ConnectErrorKind, QueryError, QueryErrorKind
from ..models import (
    ClientHandle,
    ColumnDescriptor,
    ConnectionParams,
    DatabaseSummary,
    EngineKind,
    TableSchema,
    TableSummary,
)
from .base import DatabaseClient, message_has, switch_error

logger = logging.getLogger(__name__)

MEMORY = ":memory:"
MAIN = "main"


def _database_uri(path: str) -> str:
    # mode=rw: browsing must never create an empty database file by accident.
    return Path(path).expanduser().resolve().as_uri() + "?mode=rw"


class SQLiteClient(DatabaseClient):
    """File-backed client on the stdlib sqlite3 module.

    `list_databases` returns the schemas of the connection (main plus any
    attached file). `use_database` selects one of those schemas, or opens a
    new file-backed session when given a path.
    """

    engine = EngineKind.SQLITE
    driver_errors = (sqlite3.Error,)

    def _open(self, params: ConnectionParams) -> ClientHandle:
        path = (params.database or MEMORY).strip()
        if path == MEMORY:
            conn = sqlite3.connect(MEMORY, check_same_thread=False, isolation_level=None)
        else:
            conn = sqlite3.connect(
                _database_uri(path),
                uri=True,
                timeout=self.connect_timeout,
                check_same_thread=False,
                isolation_level=None,
            )
        try:
            # Reading the header fails here (not later) for non-database files.
            conn.execute("PRAGMA schema_version").fetchone()
        except sqlite3.Error:
            conn.close()
            raise
        return ClientHandle(
            engine=self.engine,
            connection=conn,
            params=params.with_database(path),
            database=MAIN,
            schema=MAIN,
            server_version=sqlite3.sqlite_version,
        )

    def interrupt(self, handle: ClientHandle) -> None:
        try:
            handle.connection.interrupt()
        except Exception as exc:
            logger.warning("Could not interrupt SQLite statement: %s", exc)

    def list_databases(self, handle: ClientHandle) -> tuple[DatabaseSummary, ...]:
        rows = self._fetch(handle, "PRAGMA database_list")
        return tuple(DatabaseSummary(name=name, detail=file or "(memory)") for _seq, name, file in rows)

    def use_database(self, handle: ClientHandle, name: str) -> None:
        attached = {d.name for d in self.list_databases(handle)}
        if name in attached:
            handle.schema = name
            handle.database = name
            return

        # Not a schema of this connection: treat it as another database file.
        try:
            fresh = self.connect(handle.params.with_database(name))
        except ConnectError as err:
            raise switch_error(err) from err
        old = handle.connection
        handle.connection = fresh.connection
        handle.params = fresh.params
        handle.database = fresh.database
        handle.schema = fresh.schema
        try:
            old.close()
        except Exception as exc:
            logger.warning("Error closing previous SQLite connection: %s", exc)

    def list_tables(self, handle: ClientHandle) -> tuple[TableSummary, ...]:
        schema = self.quote_identifier(handle.schema or MAIN)
        rows = self._fetch(
            handle,
            f"SELECT name, type FROM {schema}.sqlite_master "
            "WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%' ORDER BY name",
        )
        return tuple(TableSummary(name=name, kind=kind) for name, kind in rows)

    def describe_table(self, handle: ClientHandle, name: str) -> TableSchema:
        schema = self.quote_identifier(handle.schema or MAIN)
        # cid, name, type, notnull, dflt_value, pk
        rows = self._fetch(handle, f"PRAGMA {schema}.table_info({self.quote_identifier(name)})")
        if not rows:
            raise self._table_not_found(name)
        columns = tuple(
            ColumnDescriptor(
                name=col,
                data_type=data_type or "",
                nullable=not notnull and not pk,
                default=None if default is None else str(default),
                primary_key=bool(pk),
            )
            for _cid, col, data_type, notnull, default, pk in rows
        )
        return TableSchema(table_name=name, columns=columns)

    def translate_connect_error(self, exc: BaseException) -> ConnectError:
        message = str(exc).strip() or type(exc).__name__
        if message_has(message, ("not a database", "malformed", "encrypted")):
            kind = ConnectErrorKind.PROTOCOL_MISMATCH
        elif message_has(message, ("locked", "busy")):
            kind = ConnectErrorKind.TIMEOUT
        elif message_has(message, ("authorization", "permission", "readonly")):
            kind = ConnectErrorKind.AUTH_REJECTED
        else:
            kind = ConnectErrorKind.UNREACHABLE
        return ConnectError(kind, message)

    def translate_query_error(self, exc: BaseException) -> QueryError:
        message = str(exc).strip() or type(exc).__name__
        if message_has(message, ("syntax error", "incomplete input", "unrecognized token")):
            kind = QueryErrorKind.SYNTAX
        elif message_has(message, ("not authorized", "readonly database", "read-only")):
            kind = QueryErrorKind.PERMISSION
        elif message_has(message, ("interrupted", "database is locked", "database table is locked", "busy")):
            kind = QueryErrorKind.TIMEOUT
        elif message_has(message, ("closed database", "disk i/o error")):
            kind = QueryErrorKind.CONNECTION_LOST
        else:
            kind = QueryErrorKind.OTHER
        return QueryError(kind, message)
