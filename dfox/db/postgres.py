from __future__ import annotations

import logging

import psycopg

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
from .base import DatabaseClient, as_text, message_has, switch_error

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "postgres"
SCHEMA = "public"

_LIST_DATABASES_SQL = """
SELECT d.datname,
       pg_catalog.pg_get_userbyid(d.datdba),
       pg_catalog.pg_encoding_to_char(d.encoding)
FROM pg_catalog.pg_database d
WHERE NOT d.datistemplate
ORDER BY d.datname
"""

_LIST_TABLES_SQL = """
SELECT table_name, table_type
FROM information_schema.tables
WHERE table_schema = %s
ORDER BY table_name
"""

_DESCRIBE_SQL = """
SELECT c.column_name,
       c.data_type,
       c.is_nullable,
       c.column_default,
       EXISTS (
           SELECT 1
           FROM information_schema.table_constraints tc
           JOIN information_schema.key_column_usage k
             ON k.constraint_name = tc.constraint_name
            AND k.table_schema = tc.table_schema
            AND k.table_name = tc.table_name
           WHERE tc.constraint_type = 'PRIMARY KEY'
             AND tc.table_schema = c.table_schema
             AND tc.table_name = c.table_name
             AND k.column_name = c.column_name
       ) AS is_pk
FROM information_schema.columns c
WHERE c.table_schema = %s AND c.table_name = %s
ORDER BY c.ordinal_position
"""

# SQLSTATE -> kind; classes (first two chars) are checked after exact codes.
_SQLSTATE_KINDS = {
    "42601": QueryErrorKind.SYNTAX,
    "42501": QueryErrorKind.PERMISSION,
    "57014": QueryErrorKind.TIMEOUT,  # query_canceled (statement_timeout)
    "55P03": QueryErrorKind.TIMEOUT,  # lock_not_available
    "25P03": QueryErrorKind.TIMEOUT,  # idle_in_transaction_session_timeout
    "57P01": QueryErrorKind.CONNECTION_LOST,  # admin_shutdown
    "57P02": QueryErrorKind.CONNECTION_LOST,  # crash_shutdown
}
_SQLSTATE_CLASS_KINDS = {
    "08": QueryErrorKind.CONNECTION_LOST,
    "28": QueryErrorKind.PERMISSION,
}


def _server_version(number: int) -> str:
    # 160002 -> "16.2"; pre-10 servers use three parts.
    if number >= 100000:
        return f"{number // 10000}.{number % 10000}"
    return f"{number // 10000}.{number // 100 % 100}.{number % 100}"


class PostgresClient(DatabaseClient):
    """psycopg 3 client. One database per connection, autocommit."""

    engine = EngineKind.POSTGRES
    driver_errors = (psycopg.Error,)

    def _open(self, params: ConnectionParams) -> ClientHandle:
        database = params.database or DEFAULT_DATABASE
        conn = psycopg.connect(
            host=params.host or None,
            port=params.port or EngineKind.POSTGRES.default_port,
            user=params.username or None,
            password=params.secret or None,
            dbname=database,
            connect_timeout=self.connect_timeout,
            autocommit=True,
        )
        return ClientHandle(
            engine=self.engine,
            connection=conn,
            params=params,
            database=database,
            server_version=_server_version(conn.info.server_version),
        )

    def interrupt(self, handle: ClientHandle) -> None:
        try:
            handle.connection.cancel_safe()
        except Exception as exc:
            logger.warning("Could not cancel running Postgres statement: %s", exc)

    def list_databases(self, handle: ClientHandle) -> tuple[DatabaseSummary, ...]:
        rows = self._fetch(handle, _LIST_DATABASES_SQL)
        return tuple(
            DatabaseSummary(name=name, detail=f"owner {owner}, {encoding}")
            for name, owner, encoding in rows
        )

    def use_database(self, handle: ClientHandle, name: str) -> None:
        if name == handle.database:
            return
        # A Postgres connection is bound to one database: reconnect, then
        # retire the old connection only once the new one is up.
        try:
            fresh = self.connect(handle.params.with_database(name))
        except ConnectError as err:
            raise switch_error(err) from err
        old = handle.connection
        handle.connection = fresh.connection
        handle.database = fresh.database
        handle.server_version = fresh.server_version
        try:
            old.close()
        except Exception as exc:
            logger.warning("Error closing previous Postgres connection: %s", exc)

    def list_tables(self, handle: ClientHandle) -> tuple[TableSummary, ...]:
        rows = self._fetch(handle, _LIST_TABLES_SQL, (SCHEMA,))
        return tuple(
            TableSummary(name=name, kind="view" if "VIEW" in str(kind) else "table")
            for name, kind in rows
        )

    def describe_table(self, handle: ClientHandle, name: str) -> TableSchema:
        rows = self._fetch(handle, _DESCRIBE_SQL, (SCHEMA, name))
        if not rows:
            raise self._table_not_found(name)
        columns = tuple(
            ColumnDescriptor(
                name=col,
                data_type=data_type,
                nullable=str(nullable).upper() == "YES",
                default=None if default is None else as_text(default),
                primary_key=bool(is_pk),
            )
            for col, data_type, nullable, default, is_pk in rows
        )
        return TableSchema(table_name=name, columns=columns)

    def translate_connect_error(self, exc: BaseException) -> ConnectError:
        message = str(exc).strip() or type(exc).__name__
        sqlstate = getattr(exc, "sqlstate", None) or ""
        if sqlstate.startswith("28") or message_has(
            message,
            (
                "password authentication failed",
                "authentication failed",
                "no password supplied",
                'role "',
                "pg_hba.conf",
            ),
        ):
            kind = ConnectErrorKind.AUTH_REJECTED
        elif message_has(message, ("timeout expired", "timed out")):
            kind = ConnectErrorKind.TIMEOUT
        elif sqlstate.startswith("08P01") or message_has(
            message,
            ("unsupported frontend protocol", "protocol", "ssl negotiation", "sslmode", "server does not support ssl"),
        ):
            kind = ConnectErrorKind.PROTOCOL_MISMATCH
        else:
            kind = ConnectErrorKind.UNREACHABLE
        return ConnectError(kind, message)

    def translate_query_error(self, exc: BaseException) -> QueryError:
        message = str(exc).strip() or type(exc).__name__
        sqlstate = getattr(exc, "sqlstate", None) or ""
        kind = _SQLSTATE_KINDS.get(sqlstate) or _SQLSTATE_CLASS_KINDS.get(sqlstate[:2])
        if kind is None:
            if not sqlstate and isinstance(exc, (psycopg.OperationalError, psycopg.InterfaceError)):
                # Raised client-side: the socket is gone or the connection closed.
                kind = QueryErrorKind.CONNECTION_LOST
            else:
                kind = QueryErrorKind.OTHER
        return QueryError(kind, message)
