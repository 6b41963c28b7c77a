"""Events understood by the state machine.

Key presses become these through the dispatcher; `CommandOutcome` (from the
runner) is the only other input.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..errors import DFoxError
from ..models import ConnectionParams, EngineKind


class Event:
    pass


@dataclass(frozen=True)
class SelectEngine(Event):
    engine: EngineKind


@dataclass(frozen=True)
class SubmitConnection(Event):
    params: ConnectionParams


@dataclass(frozen=True)
class SelectDatabase(Event):
    name: str


@dataclass(frozen=True)
class SelectTable(Event):
    name: str


@dataclass(frozen=True)
class PreviewTable(Event):
    name: str


@dataclass(frozen=True)
class EnterQueryMode(Event):
    pass


@dataclass(frozen=True)
class EditQuery(Event):
    text: str


@dataclass(frozen=True)
class RunQuery(Event):
    pass


@dataclass(frozen=True)
class MoveCursor(Event):
    rows: int = 0
    columns: int = 0


@dataclass(frozen=True)
class JumpCursor(Event):
    to: str = "start"  # "start" | "end"


@dataclass(frozen=True)
class CopyRow(Event):
    pass


@dataclass(frozen=True)
class CopyAll(Event):
    pass


@dataclass(frozen=True)
class Refresh(Event):
    pass


@dataclass(frozen=True)
class Back(Event):
    pass


@dataclass(frozen=True)
class ShowDatabases(Event):
    """F1: jump to the database list of the live connection."""


@dataclass(frozen=True)
class ToggleDebug(Event):
    """F12."""


@dataclass(frozen=True)
class Dismiss(Event):
    pass


@dataclass(frozen=True)
class CancelPending(Event):
    pass


@dataclass(frozen=True)
class Failure(Event):
    """An error raised outside the runner (screen code, export)."""

    error: DFoxError


@dataclass(frozen=True)
class Quit(Event):
    pass
