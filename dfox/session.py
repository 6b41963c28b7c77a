"""The single owner of the live database connection."""
from __future__ import annotations

import logging
import threading
from typing import Callable

from .db import DatabaseClient, client_for
from .errors import ConnectError, DFoxError, QueryError
from .logging import DebugLog, Stopwatch
from .models import (
    ClientHandle,
    ConnectionParams,
    DatabaseSummary,
    EngineKind,
    QueryResult,
    TableSchema,
    TableSummary,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[EngineKind], DatabaseClient]


class ConnectionSession:
    """Holds zero or one `ClientHandle` and mediates every call on it.

    Nothing else keeps a reference to the handle. Operations are serialized
    with a re-entrant lock because the runner calls in from one worker thread
    per slot; `interrupt` deliberately skips the lock so it can reach a
    statement that is holding it.
    """

    def __init__(
        self,
        debug_log: DebugLog | None = None,
        client_factory: ClientFactory | None = None,
        connect_timeout: int = 10,
    ):
        self.debug_log = debug_log or DebugLog()
        self._factory = client_factory or (lambda engine: client_for(engine, connect_timeout=connect_timeout))
        self._lock = threading.RLock()
        self._client: DatabaseClient | None = None
        self._handle: ClientHandle | None = None

    # ── state queries ──────────────────────────────────────────────────

    def is_connected(self) -> bool:
        return self._handle is not None

    def current_engine(self) -> EngineKind | None:
        handle = self._handle
        return handle.engine if handle else None

    def current_database(self) -> str | None:
        handle = self._handle
        return handle.database if handle else None

    def server_version(self) -> str:
        handle = self._handle
        return handle.server_version if handle else ""

    # ── lifecycle ──────────────────────────────────────────────────────

    def connect(self, engine: EngineKind, params: ConnectionParams) -> str:
        """Replace any current connection with a new one.

        Returns the server version string. On failure the session is left
        disconnected and the `ConnectError` propagates.
        """
        with self._lock:
            self.disconnect()
            client = self._factory(engine)
            target = f"{engine.label} {params.redacted()}"
            with Stopwatch() as sw:
                try:
                    handle = client.connect(params)
                except ConnectError as err:
                    self.debug_log.error(f"connect {target}: {err.kind.value}: {err.message}", sw.elapsed)
                    raise
            self._client = client
            self._handle = handle
            self.debug_log.connect(f"connected to {target} (server {handle.server_version})", sw.elapsed)
            logger.info("Connected to %s", target)
            return handle.server_version

    def disconnect(self, timeout: float | None = None) -> None:
        """Close the connection if there is one. Idempotent, never raises.

        With a `timeout`, gives up waiting for a call that still holds the
        connection after that many seconds and leaves the handle to the worker
        thread running it.
        """
        if not self._lock.acquire(timeout=-1 if timeout is None else timeout):
            logger.warning("Connection still busy after %.1fs; abandoning it", timeout)
            self.debug_log.error("disconnect: connection busy, abandoned to its worker")
            return
        try:
            client, handle = self._client, self._handle
            self._client = None
            self._handle = None
        finally:
            self._lock.release()
        if client is None or handle is None:
            return
        client.disconnect(handle)
        self.debug_log.connect(f"disconnected from {handle.engine.label}")

    def interrupt(self) -> None:
        client, handle = self._client, self._handle
        if client is None or handle is None:
            return
        self.debug_log.info("interrupt requested")
        client.interrupt(handle)

    # ── capability set on the current connection ───────────────────────

    def list_databases(self) -> tuple[DatabaseSummary, ...]:
        return self._call("list databases", lambda c, h: c.list_databases(h))

    def use_database(self, name: str) -> None:
        self._call(f"use {name}", lambda c, h: c.use_database(h, name))

    def list_tables(self) -> tuple[TableSummary, ...]:
        return self._call("list tables", lambda c, h: c.list_tables(h))

    def describe_table(self, name: str) -> TableSchema:
        return self._call(f"describe {name}", lambda c, h: c.describe_table(h, name))

    def execute_query(self, sql: str) -> QueryResult:
        result = self._call(sql.strip(), lambda c, h: c.execute_query(h, sql), log_success=False)
        self.debug_log.query(f"{result.statement} -> {result.summary()}", result.elapsed)
        return result

    def _call(self, what: str, op, log_success: bool = True):
        with self._lock:
            client, handle = self._client, self._handle
            if client is None or handle is None:
                err = QueryError.not_connected()
                self.debug_log.error(f"{what}: {err.message}")
                raise err
            with Stopwatch() as sw:
                try:
                    value = op(client, handle)
                except DFoxError as err:
                    self.debug_log.error(f"{what}: {err.kind.value}: {err.message}", sw.elapsed)
                    if isinstance(err, QueryError) and err.connection_dead:
                        logger.warning("Connection lost during %r; dropping handle", what)
                        self.disconnect()
                    raise
            if log_success:
                self.debug_log.query(what, sw.elapsed)
            return value
