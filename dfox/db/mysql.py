from __future__ import annotations

import logging

import pymysql

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
from .base import DatabaseClient, as_text, message_has

logger = logging.getLogger(__name__)

# MySQL server / client error numbers (first element of exc.args).
_SYNTAX_ERRNOS = {1064, 1149}
_PERMISSION_ERRNOS = {1044, 1045, 1142, 1143, 1227, 1370}
_TIMEOUT_ERRNOS = {1205, 1317, 3024}
_LOST_ERRNOS = {2006, 2013, 2055}

_AUTH_ERRNOS = {1044, 1045, 1698}
_PROTOCOL_ERRNOS = {1043, 2026, 2027, 2059}


def _errno(exc: BaseException) -> int | None:
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return None


def _message(exc: BaseException) -> str:
    if len(exc.args) >= 2:
        return str(exc.args[1])
    return str(exc).strip() or type(exc).__name__


class MySQLClient(DatabaseClient):
    """PyMySQL client, autocommit. `use_database` is `select_db` on the same link."""

    engine = EngineKind.MYSQL
    driver_errors = (pymysql.MySQLError,)

    def _open(self, params: ConnectionParams) -> ClientHandle:
        try:
            conn = pymysql.connect(
                host=params.host or "localhost",
                port=params.port or EngineKind.MYSQL.default_port,
                user=params.username or None,
                password=params.secret or "",
                database=params.database or None,
                connect_timeout=self.connect_timeout,
                autocommit=True,
                charset="utf8mb4",
            )
        except RuntimeError as exc:
            # PyMySQL raises RuntimeError when an auth plugin needs an extra package.
            raise ConnectError(ConnectErrorKind.PROTOCOL_MISMATCH, str(exc)) from exc
        return ClientHandle(
            engine=self.engine,
            connection=conn,
            params=params,
            database=params.database or None,
            server_version=conn.get_server_info(),
        )

    def interrupt(self, handle: ClientHandle) -> None:
        """Kill the running statement from a second, short-lived connection."""
        try:
            thread_id = handle.connection.thread_id()
            killer = self._open(handle.params.with_database(None))
        except Exception as exc:
            logger.warning("Could not open a connection to interrupt MySQL statement: %s", exc)
            return
        try:
            with killer.connection.cursor() as cur:
                cur.execute(f"KILL QUERY {int(thread_id)}")
        except Exception as exc:
            logger.warning("KILL QUERY failed: %s", exc)
        finally:
            self.disconnect(killer)

    def list_databases(self, handle: ClientHandle) -> tuple[DatabaseSummary, ...]:
        rows = self._fetch(handle, "SHOW DATABASES")
        return tuple(DatabaseSummary(name=as_text(r[0])) for r in rows)

    def use_database(self, handle: ClientHandle, name: str) -> None:
        try:
            handle.connection.select_db(name)
        except self.driver_errors as exc:
            raise self.translate_query_error(exc) from exc
        handle.database = name

    def list_tables(self, handle: ClientHandle) -> tuple[TableSummary, ...]:
        rows = self._fetch(handle, "SHOW FULL TABLES")
        return tuple(
            TableSummary(
                name=as_text(r[0]),
                kind="view" if len(r) > 1 and "VIEW" in as_text(r[1]) else "table",
            )
            for r in rows
        )

    def describe_table(self, handle: ClientHandle, name: str) -> TableSchema:
        # Field, Type, Null, Key, Default, Extra
        rows = self._fetch(handle, f"SHOW COLUMNS FROM {self.quote_identifier(name)}")
        if not rows:
            raise self._table_not_found(name)
        columns = tuple(
            ColumnDescriptor(
                name=as_text(r[0]),
                data_type=as_text(r[1]),
                nullable=as_text(r[2]).upper() == "YES",
                default=None if r[4] is None else as_text(r[4]),
                primary_key=as_text(r[3]).upper() == "PRI",
            )
            for r in rows
        )
        return TableSchema(table_name=name, columns=columns)

    def translate_connect_error(self, exc: BaseException) -> ConnectError:
        errno = _errno(exc)
        message = _message(exc)
        if errno in _AUTH_ERRNOS:
            kind = ConnectErrorKind.AUTH_REJECTED
        elif message_has(message, ("timed out", "timeout")):
            kind = ConnectErrorKind.TIMEOUT
        elif errno in _PROTOCOL_ERRNOS or message_has(message, ("packet sequence", "malformed packet")):
            kind = ConnectErrorKind.PROTOCOL_MISMATCH
        else:
            kind = ConnectErrorKind.UNREACHABLE
        return ConnectError(kind, message)

    def translate_query_error(self, exc: BaseException) -> QueryError:
        errno = _errno(exc)
        message = _message(exc)
        if errno in _SYNTAX_ERRNOS:
            kind = QueryErrorKind.SYNTAX
        elif errno in _PERMISSION_ERRNOS:
            kind = QueryErrorKind.PERMISSION
        elif errno in _TIMEOUT_ERRNOS:
            kind = QueryErrorKind.TIMEOUT
        elif errno in _LOST_ERRNOS or isinstance(exc, pymysql.err.InterfaceError):
            kind = QueryErrorKind.CONNECTION_LOST
        else:
            kind = QueryErrorKind.OTHER
        return QueryError(kind, message)
