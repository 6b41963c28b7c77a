"""Map raw key presses to state-machine events for the current screen."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..models import ConnectionParams, EngineKind
from . import events as ev
from .state import AppState


@dataclass(frozen=True)
class Key:
    """One input from a screen.

    `name` is the key ("enter", "esc", "f1", "ctrl+c", ...); `value` carries
    what was picked or typed, e.g. the selected table name or the SQL text.
    """

    name: str
    value: Any = None


BACK_KEYS = {"esc", "back"}
QUIT_KEYS = {"q", "quit", "ctrl+q"}


class EventDispatcher:
    """Stateless translation layer between screens and the state machine.

    `dispatch` returns a tuple of events (usually one, empty when the key
    means nothing on the current screen).
    """

    def dispatch(self, state: AppState, key: Key | None) -> tuple[ev.Event, ...]:
        if key is None:
            return ()
        name = key.name.lower()

        if name in QUIT_KEYS:
            return (ev.Quit(),)
        if name == "f12":
            return (ev.ToggleDebug(),)
        if state.show_debug or state.error is not None:
            if name in BACK_KEYS or name in {"enter", "dismiss"}:
                return (ev.Dismiss(),)
            return ()
        if name == "f1":
            return (ev.ShowDatabases(),)
        if state.busy and name in {"esc", "cancel"}:
            return (ev.CancelPending(),)

        movement = self._movement(state, name)
        if movement is not None:
            return (movement,)
        if name in BACK_KEYS:
            return (ev.Back(),)

        handler = getattr(self, f"_on_{state.screen.value}", None)
        if handler is None:
            return ()
        event = handler(state, name, key.value)
        if event is None:
            return ()
        if isinstance(event, tuple):
            return event
        return (event,)

    # ── shared keys ────────────────────────────────────────────────────

    @staticmethod
    def _movement(state: AppState, name: str) -> ev.Event | None:
        page = state.page_size
        if name == "up":
            return ev.MoveCursor(rows=-1)
        if name == "down":
            return ev.MoveCursor(rows=1)
        if name == "pageup":
            return ev.MoveCursor(rows=-page)
        if name == "pagedown":
            return ev.MoveCursor(rows=page)
        if name == "home":
            return ev.JumpCursor("start")
        if name == "end":
            return ev.JumpCursor("end")
        if name == "left":
            return ev.MoveCursor(columns=-1)
        if name == "right":
            return ev.MoveCursor(columns=1)
        return None

    @staticmethod
    def _picked(items: list[str], cursor_row: int, value: Any) -> str | None:
        if value is not None:
            return str(value)
        if 0 <= cursor_row < len(items):
            return items[cursor_row]
        return None

    # ── per screen ─────────────────────────────────────────────────────

    def _on_engine_select(self, state: AppState, name: str, value: Any):
        if name != "enter":
            return None
        if value is None:
            engines = list(EngineKind)
            value = engines[min(state.cursor().row, len(engines) - 1)]
        return ev.SelectEngine(EngineKind(value))

    def _on_connection_input(self, state: AppState, name: str, value: Any):
        if name not in {"enter", "submit"} or value is None:
            return None
        if isinstance(value, dict):
            value = ConnectionParams(**value)
        return ev.SubmitConnection(value)

    def _on_database_select(self, state: AppState, name: str, value: Any):
        if name in {"r", "f5", "refresh"}:
            return ev.Refresh()
        if name == "enter":
            picked = self._picked([d.name for d in state.databases], state.cursor().row, value)
            return ev.SelectDatabase(picked) if picked is not None else None
        return None

    def _on_table_list(self, state: AppState, name: str, value: Any):
        if name in {"r", "f5", "refresh"}:
            return ev.Refresh()
        if name in {"i", "tab"}:
            return ev.EnterQueryMode()
        if name in {"enter", "p"}:
            picked = self._picked([t.name for t in state.tables], state.cursor().row, value)
            if picked is None:
                return None
            return ev.SelectTable(picked) if name == "enter" else ev.PreviewTable(picked)
        return None

    def _on_table_describe(self, state: AppState, name: str, value: Any):
        if name in {"i", "tab"}:
            return ev.EnterQueryMode()
        if name == "p" and state.schema is not None:
            return ev.PreviewTable(state.schema.table_name)
        return None

    def _on_query_editor(self, state: AppState, name: str, value: Any):
        if name == "text" and value is not None:
            return ev.EditQuery(str(value))
        if name in {"f5", "ctrl+e", "execute"}:
            if value is not None:
                return (ev.EditQuery(str(value)), ev.RunQuery())
            return ev.RunQuery()
        return None

    def _on_query_result(self, state: AppState, name: str, value: Any):
        if name == "ctrl+c":
            return ev.CopyRow()
        if name == "ctrl+a":
            return ev.CopyAll()
        if name in {"i", "tab"}:
            return ev.EnterQueryMode()
        if name == "f5":
            return ev.RunQuery()
        return None


__all__ = ["EventDispatcher", "Key"]
