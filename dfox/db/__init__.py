"""Database clients, one per supported engine.

The set of engines is closed: `CLIENTS` maps every `EngineKind` to the class
implementing the capability set for it.
"""
from __future__ import annotations

from ..models import EngineKind
from .base import DatabaseClient, clean_statement, format_cell
from .mysql import MySQLClient
from .postgres import PostgresClient
from .sqlite import SQLiteClient

CLIENTS: dict[EngineKind, type[DatabaseClient]] = {
    EngineKind.POSTGRES: PostgresClient,
    EngineKind.MYSQL: MySQLClient,
    EngineKind.SQLITE: SQLiteClient,
}


def client_for(engine: EngineKind, connect_timeout: int = 10) -> DatabaseClient:
    return CLIENTS[EngineKind(engine)](connect_timeout=connect_timeout)


__all__ = [
    "CLIENTS",
    "DatabaseClient",
    "MySQLClient",
    "PostgresClient",
    "SQLiteClient",
    "clean_statement",
    "client_for",
    "format_cell",
]
