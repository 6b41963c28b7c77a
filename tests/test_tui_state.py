"""Unit tests for AppState and the pure render step."""
from __future__ import annotations

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from conftest import USERS
from dfox.commands import CommandToken, Slot
from dfox.models import ConnectionParams, DatabaseSummary, EngineKind, QueryResult, TableSummary
from dfox.tui.state import AppState, Cursor, ErrorInfo, Screen, initial_state
from dfox.tui.view import KEY_HELP, render


@pytest.fixture
def mock_settings():
    """Create mock settings."""
    settings = MagicMock()
    settings.DFOX_DEFAULT_HOST = "db.internal"
    settings.DFOX_DEFAULT_USER = "reader"
    settings.DFOX_PAGE_SIZE = 5
    settings.DFOX_MAX_VISIBLE_COLUMNS = 3
    settings.DFOX_PREVIEW_LIMIT = 0
    return settings


def _result(n_rows: int, n_cols: int) -> QueryResult:
    columns = tuple(f"c{i}" for i in range(n_cols))
    rows = tuple(tuple(f"r{r}c{c}" for c in range(n_cols)) for r in range(n_rows))
    return QueryResult(columns=columns, rows=rows, row_count=n_rows)


def test_appstate_initial_state():
    """Test AppState starts on engine selection, disconnected and idle."""
    state = AppState()
    assert state.screen == Screen.ENGINE_SELECT
    assert state.top_screen == Screen.ENGINE_SELECT
    assert not state.connected
    assert not state.busy
    assert state.cursor() == Cursor()
    assert state.running


def test_initial_state_from_settings(mock_settings):
    """Settings pre-fill the form and bound the views."""
    state = initial_state(mock_settings)
    assert state.params.host == "db.internal"
    assert state.params.username == "reader"
    assert state.page_size == 5
    assert state.max_visible_columns == 3
    assert state.preview_limit == 1


def test_cursors_are_kept_per_screen():
    state = AppState().with_cursor(Screen.TABLE_LIST, Cursor(row=3))
    assert state.cursor(Screen.TABLE_LIST).row == 3
    assert state.cursor(Screen.DATABASE_SELECT).row == 0


def test_top_screen_prefers_debug_over_error():
    error = ErrorInfo("Query failed", "syntax", "near SELEC", Screen.QUERY_EDITOR)
    state = AppState(screen=Screen.QUERY_EDITOR, error=error)
    assert state.top_screen == Screen.ERROR_OVERLAY
    assert replace(state, show_debug=True).top_screen == Screen.DEBUG_OVERLAY


def test_pending_slots():
    state = AppState(pending={Slot.QUERY: CommandToken(Slot.QUERY, 4)})
    assert state.busy
    assert state.is_pending(Slot.QUERY)
    assert not state.is_pending(Slot.LIST)


# ═══════════════════════════════════════════════════════════════════════════════
# RENDER
# ═══════════════════════════════════════════════════════════════════════════════

def test_render_engine_select():
    view = render(AppState())
    assert view.items == ("PostgreSQL", "MySQL", "SQLite")
    assert view.details == ("postgres", "mysql", "sqlite")
    assert view.header == "Not connected"
    assert view.footer == KEY_HELP[Screen.ENGINE_SELECT]
    assert view.selected_item == "PostgreSQL"


def test_render_table_list():
    state = AppState(
        screen=Screen.TABLE_LIST,
        engine=EngineKind.POSTGRES,
        params=ConnectionParams(host="db", port=5432, username="app", secret="pw"),
        connected=True,
        server_version="16.2",
        database="app_db",
        tables=(TableSummary("users"), TableSummary("active_users", "view")),
    ).with_cursor(Screen.TABLE_LIST, Cursor(row=1))
    view = render(state)
    assert view.title == "Tables in app_db"
    assert view.items == ("users", "active_users")
    assert view.details == ("table", "view")
    assert view.selected_item == "active_users"
    assert view.header == "PostgreSQL 16.2 · app:***@db:5432 · db app_db"


def test_render_describe_lines():
    view = render(AppState(screen=Screen.TABLE_DESCRIBE, schema=USERS))
    assert view.schema_lines[0] == "users"
    assert len(view.schema_lines) == 3


def test_render_busy_label():
    state = AppState(
        screen=Screen.DATABASE_SELECT,
        databases=(DatabaseSummary("app_db"),),
        pending={Slot.LIST: CommandToken(Slot.LIST, 2)},
    )
    view = render(state)
    assert view.busy
    assert view.busy_label == "Loading…"


def test_render_result_pages_rows():
    """The window shows the page holding the cursor row."""
    state = AppState(screen=Screen.QUERY_RESULT, result=_result(45, 2), page_size=20)
    state = state.with_cursor(Screen.QUERY_RESULT, Cursor(row=27))
    window = render(state).window
    assert window.first_row == 20
    assert len(window.rows) == 20
    assert window.rows[0][0] == "r20c0"
    assert window.selected_row == 27
    assert window.caption() == "Rows 21-40/45 | Cols 1-2/2"


def test_render_result_slices_columns():
    state = AppState(screen=Screen.QUERY_RESULT, result=_result(2, 12), max_visible_columns=8)
    state = state.with_cursor(Screen.QUERY_RESULT, Cursor(row=0, column=3))
    view = render(state)
    assert view.window.columns == tuple(f"c{i}" for i in range(3, 11))
    assert view.window.rows[0][0] == "r0c3"
    assert view.title == "Query result (Rows 1-2/2 | Cols 4-11/12)"


def test_render_statement_result():
    result = QueryResult(row_count=3, message="Statement executed, 3 row(s) affected.")
    view = render(AppState(screen=Screen.QUERY_RESULT, result=result))
    assert view.window.total_columns == 0
    assert view.window.message.startswith("Statement executed, 3 row(s) affected.")
    assert view.title == "Query result"


def test_render_overlay_keeps_base():
    error = ErrorInfo("Query failed", "other", "division by zero", Screen.QUERY_EDITOR)
    view = render(AppState(screen=Screen.QUERY_EDITOR, query_text="SELECT 1/0", error=error))
    assert view.screen == Screen.ERROR_OVERLAY
    assert view.base == Screen.QUERY_EDITOR
    assert view.error.message == "division by zero"
    assert view.query_text == "SELECT 1/0"
