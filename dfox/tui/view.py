"""Pure rendering: `render(state)` describes what the screens should draw.

Screens only read the `View`; they never see or change `AppState`.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..commands import Slot
from ..models import ConnectionParams, EngineKind
from .navigator import Navigator
from .state import AppState, Cursor, ErrorInfo, Screen

_NAV = Navigator()

TITLES = {
    Screen.ENGINE_SELECT: "Select database type",
    Screen.CONNECTION_INPUT: "Connection details",
    Screen.DATABASE_SELECT: "Databases",
    Screen.TABLE_LIST: "Tables",
    Screen.TABLE_DESCRIBE: "Table structure",
    Screen.QUERY_EDITOR: "SQL query",
    Screen.QUERY_RESULT: "Query result",
    Screen.ERROR_OVERLAY: "Error",
    Screen.DEBUG_OVERLAY: "Debug log",
}

KEY_HELP = {
    Screen.ENGINE_SELECT: "Enter select · q quit",
    Screen.CONNECTION_INPUT: "Enter connect · Esc back · F12 debug",
    Screen.DATABASE_SELECT: "Enter open · r refresh · Esc disconnect · F12 debug",
    Screen.TABLE_LIST: "Enter describe · p preview · i query · r refresh · Esc back · F1 databases",
    Screen.TABLE_DESCRIBE: "p preview · i query · Esc back · F1 databases",
    Screen.QUERY_EDITOR: "F5 execute · Esc back · F1 databases",
    Screen.QUERY_RESULT: "↑↓ rows · ←→ columns · PgUp/PgDn page · Ctrl+C copy row · Ctrl+A copy all · Esc back",
    Screen.ERROR_OVERLAY: "Esc dismiss · F12 debug · q quit",
    Screen.DEBUG_OVERLAY: "Esc close · q quit",
}


@dataclass(frozen=True)
class ResultWindow:
    """The visible page and column slice of a query result."""

    columns: tuple[str, ...] = ()
    rows: tuple[tuple[str, ...], ...] = ()
    first_row: int = 0
    first_column: int = 0
    total_rows: int = 0
    total_columns: int = 0
    selected_row: int = 0
    message: str = ""

    @property
    def last_row(self) -> int:
        return self.first_row + len(self.rows)

    @property
    def last_column(self) -> int:
        return self.first_column + len(self.columns)

    def caption(self) -> str:
        if not self.total_columns:
            return self.message
        rows = f"Rows {self.first_row + 1 if self.rows else 0}-{self.last_row}/{self.total_rows}"
        cols = f"Cols {self.first_column + 1}-{self.last_column}/{self.total_columns}"
        return f"{rows} | {cols}"


@dataclass(frozen=True)
class View:
    screen: Screen
    base: Screen
    title: str
    breadcrumbs: str
    header: str
    cursor: Cursor
    items: tuple[str, ...] = ()
    details: tuple[str, ...] = ()
    busy: bool = False
    busy_label: str = ""
    status: str = ""
    footer: str = ""
    engine: EngineKind | None = None
    params: ConnectionParams = ConnectionParams()
    query_text: str = ""
    schema_lines: tuple[str, ...] = ()
    window: ResultWindow | None = None
    error: ErrorInfo | None = None

    @property
    def selected_item(self) -> str | None:
        if 0 <= self.cursor.row < len(self.items):
            return self.items[self.cursor.row]
        return None


def _header(state: AppState) -> str:
    if not state.connected or state.engine is None:
        return "Not connected"
    parts = [f"{state.engine.label} {state.server_version}".strip(), state.params.redacted()]
    if state.database:
        parts.append(f"db {state.database}")
    return " · ".join(parts)


def _busy_label(state: AppState) -> str:
    return " · ".join(slot.busy_label for slot in Slot if slot in state.pending)


def _result_window(state: AppState, cursor: Cursor) -> ResultWindow | None:
    result = state.result
    if result is None:
        return None
    if not result.has_rows:
        return ResultWindow(message=result.summary())
    page = state.page_size
    first_row = (cursor.row // page) * page
    first_column = cursor.column
    last_column = first_column + state.max_visible_columns
    rows = tuple(row[first_column:last_column] for row in result.rows[first_row:first_row + page])
    return ResultWindow(
        columns=result.columns[first_column:last_column],
        rows=rows,
        first_row=first_row,
        first_column=first_column,
        total_rows=len(result.rows),
        total_columns=len(result.columns),
        selected_row=cursor.row,
        message=result.summary(),
    )


def render(state: AppState) -> View:
    base = state.screen
    top = state.top_screen
    cursor = state.cursor(base)

    items: tuple[str, ...] = ()
    details: tuple[str, ...] = ()
    if base == Screen.ENGINE_SELECT:
        items = tuple(kind.label for kind in EngineKind)
        details = tuple(kind.value for kind in EngineKind)
    elif base == Screen.DATABASE_SELECT:
        items = tuple(d.name for d in state.databases)
        details = tuple(d.detail for d in state.databases)
    elif base == Screen.TABLE_LIST:
        items = tuple(t.name for t in state.tables)
        details = tuple(t.kind for t in state.tables)

    schema_lines = tuple(state.schema.tree_lines()) if state.schema is not None else ()
    window = _result_window(state, cursor) if base == Screen.QUERY_RESULT else None

    title = TITLES[top]
    if top == Screen.TABLE_LIST and state.database:
        title = f"Tables in {state.database}"
    elif top == Screen.QUERY_RESULT and window is not None and window.total_columns:
        title = f"Query result ({window.caption()})"

    return View(
        screen=top,
        base=base,
        title=title,
        breadcrumbs=_NAV.breadcrumbs(state),
        header=_header(state),
        cursor=cursor,
        items=items,
        details=details,
        busy=state.busy,
        busy_label=_busy_label(state),
        status=state.status,
        footer=KEY_HELP[top],
        engine=state.engine,
        params=state.params,
        query_text=state.query_text,
        schema_lines=schema_lines,
        window=window,
        error=state.error,
    )
