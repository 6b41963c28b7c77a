"""Commands: frozen descriptions of one session operation each.

The state machine creates them (minting the token), the runner executes them
on the worker thread for their slot. Effects that are not database work
(`Cancel`, `Export`, `Exit`) live here too so the router has one place to look.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from .models import ConnectionParams, EngineKind
from .session import ConnectionSession


class Slot(str, Enum):
    """Runner channels. At most one command per slot is outstanding."""

    CONNECT = "connect"
    LIST = "list"
    QUERY = "query"

    @property
    def busy_label(self) -> str:
        return {
            Slot.CONNECT: "Connecting…",
            Slot.LIST: "Loading…",
            Slot.QUERY: "Running query…",
        }[self]


@dataclass(frozen=True, order=True)
class CommandToken:
    slot: Slot
    seq: int

    def __str__(self) -> str:
        return f"{self.slot.value}#{self.seq}"


@dataclass(frozen=True)
class Command:
    token: CommandToken

    SLOT: ClassVar[Slot] = Slot.LIST
    # Whether cancelling a running instance should interrupt the driver.
    INTERRUPTIBLE: ClassVar[bool] = False

    @property
    def slot(self) -> Slot:
        return self.token.slot

    def run(self, session: ConnectionSession) -> Any:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Connect(Command):
    engine: EngineKind
    params: ConnectionParams

    SLOT: ClassVar[Slot] = Slot.CONNECT

    def run(self, session: ConnectionSession) -> str:
        return session.connect(self.engine, self.params)

    def describe(self) -> str:
        return f"Connect {self.engine.label} {self.params.redacted()}"


@dataclass(frozen=True)
class Disconnect(Command):
    SLOT: ClassVar[Slot] = Slot.CONNECT

    def run(self, session: ConnectionSession) -> None:
        session.disconnect()


@dataclass(frozen=True)
class ListDatabases(Command):
    def run(self, session: ConnectionSession):
        return session.list_databases()


@dataclass(frozen=True)
class OpenDatabase(Command):
    """Switch database and list its tables in one job."""

    name: str

    def run(self, session: ConnectionSession):
        session.use_database(self.name)
        return session.list_tables()

    def describe(self) -> str:
        return f"Open {self.name}"


@dataclass(frozen=True)
class DescribeTable(Command):
    name: str

    def run(self, session: ConnectionSession):
        return session.describe_table(self.name)

    def describe(self) -> str:
        return f"Describe {self.name}"


@dataclass(frozen=True)
class ExecuteQuery(Command):
    sql: str
    # Set for table previews; only changes the status line.
    preview_of: str | None = None

    SLOT: ClassVar[Slot] = Slot.QUERY
    INTERRUPTIBLE: ClassVar[bool] = True

    def run(self, session: ConnectionSession):
        return session.execute_query(self.sql)

    def describe(self) -> str:
        return f"Execute {self.sql.strip()[:60]}"


# ═══════════════════════════════════════════════════════════════════════════════
# NON-DATABASE EFFECTS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Cancel:
    token: CommandToken


@dataclass(frozen=True)
class Export:
    lines: tuple[str, ...]
    label: str = ""


@dataclass(frozen=True)
class Exit:
    pass
