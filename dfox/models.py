"""Shared value types: engines, connection params, schema and query results."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class EngineKind(str, Enum):
    """Supported database engines."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @property
    def label(self) -> str:
        return {
            EngineKind.POSTGRES: "PostgreSQL",
            EngineKind.MYSQL: "MySQL",
            EngineKind.SQLITE: "SQLite",
        }[self]

    @property
    def default_port(self) -> int | None:
        return {
            EngineKind.POSTGRES: 5432,
            EngineKind.MYSQL: 3306,
            EngineKind.SQLITE: None,
        }[self]

    @property
    def is_file_based(self) -> bool:
        return self is EngineKind.SQLITE

    def quote(self, name: str) -> str:
        """Quote an identifier the way this engine expects."""
        if self is EngineKind.MYSQL:
            return "`" + name.replace("`", "``") + "`"
        return '"' + name.replace('"', '""') + '"'


@dataclass(frozen=True)
class ConnectionParams:
    """What the operator typed on the connection screen.

    For SQLite only `database` matters: it is the path of the database file
    (``:memory:`` works too).
    """

    host: str = "localhost"
    port: int | None = None
    username: str = ""
    secret: str = ""
    database: str | None = None

    def with_database(self, database: str | None) -> ConnectionParams:
        return replace(self, database=database)

    def redacted(self) -> str:
        """Printable description with the secret masked."""
        if self.port is None and not self.username:
            return self.database or ":memory:"
        auth = f"{self.username}:***@" if self.secret else (f"{self.username}@" if self.username else "")
        port = f":{self.port}" if self.port else ""
        db = f"/{self.database}" if self.database else ""
        return f"{auth}{self.host}{port}{db}"


@dataclass
class ClientHandle:
    """A live driver connection. Only ConnectionSession keeps one around."""

    engine: EngineKind
    connection: Any
    params: ConnectionParams
    database: str | None = None
    # Active attached schema for SQLite ("main" unless switched).
    schema: str | None = None
    server_version: str = ""


@dataclass(frozen=True)
class DatabaseSummary:
    name: str
    detail: str = ""


@dataclass(frozen=True)
class TableSummary:
    name: str
    kind: str = "table"


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    data_type: str
    nullable: bool = True
    default: str | None = None
    primary_key: bool = False

    def as_tuple(self) -> tuple[str, str, bool]:
        return (self.name, self.data_type, self.nullable)


@dataclass(frozen=True)
class TableSchema:
    """Columns of one table, in declaration order."""

    table_name: str
    columns: tuple[ColumnDescriptor, ...] = ()

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def tree_lines(self) -> list[str]:
        """Tree-like describe view, one line per column."""
        lines = [self.table_name]
        for i, col in enumerate(self.columns):
            branch = "└─" if i == len(self.columns) - 1 else "├─"
            flags = []
            if col.primary_key:
                flags.append("PK")
            flags.append("NULL" if col.nullable else "NOT NULL")
            if col.default is not None:
                flags.append(f"DEFAULT {col.default}")
            lines.append(f"  {branch} {col.name}: {col.data_type} ({', '.join(flags)})")
        return lines


@dataclass(frozen=True)
class QueryResult:
    """Outcome of one statement. Cells are already stringified."""

    columns: tuple[str, ...] = ()
    rows: tuple[tuple[str, ...], ...] = ()
    row_count: int = 0
    elapsed: float = 0.0
    error: str | None = None
    message: str = ""
    statement: str = field(default="", compare=False)

    @property
    def has_rows(self) -> bool:
        return bool(self.columns)

    def summary(self) -> str:
        if self.error:
            return f"Error: {self.error}"
        if self.message:
            return f"{self.message} ({self.elapsed * 1000:.0f} ms)"
        return f"{self.row_count} row(s) in {self.elapsed * 1000:.0f} ms"
