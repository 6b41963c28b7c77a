"""Engine-agnostic error taxonomy.

Every driver exception is translated into one of these at the client boundary,
so the session, the runner and the state machine never see driver types.
"""
from __future__ import annotations

from enum import Enum


class ConnectErrorKind(str, Enum):
    UNREACHABLE = "unreachable"
    AUTH_REJECTED = "auth_rejected"
    PROTOCOL_MISMATCH = "protocol_mismatch"
    TIMEOUT = "timeout"


class QueryErrorKind(str, Enum):
    SYNTAX = "syntax"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    CONNECTION_LOST = "connection_lost"
    NOT_CONNECTED = "not_connected"
    OTHER = "other"


class DFoxError(Exception):
    """Base class for errors surfaced to the user."""

    title = "Error"

    def __init__(self, kind: Enum, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message or kind.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.name}, {self.message!r})"


class ConnectError(DFoxError):
    title = "Connection failed"

    kind: ConnectErrorKind


class QueryError(DFoxError):
    title = "Query failed"

    kind: QueryErrorKind

    @classmethod
    def not_connected(cls) -> QueryError:
        return cls(QueryErrorKind.NOT_CONNECTED, "No database connection available.")

    @property
    def connection_dead(self) -> bool:
        return self.kind in (QueryErrorKind.CONNECTION_LOST, QueryErrorKind.NOT_CONNECTED)
