"""The application state machine.

`transition(state, event)` is pure: it returns the next `AppState` and the
effects the router must carry out (commands to submit, tokens to cancel,
lines to export, exit). Nothing here touches the terminal or the database.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Callable, Union

from ..commands import (
    Cancel,
    Command,
    CommandToken,
    Connect,
    DescribeTable,
    Disconnect,
    ExecuteQuery,
    Exit,
    Export,
    ListDatabases,
    OpenDatabase,
)
from ..errors import ConnectError, DFoxError, QueryError
from ..export import result_lines, row_lines
from ..models import EngineKind
from ..runner import CommandOutcome
from .events import (
    Back,
    CancelPending,
    CopyAll,
    CopyRow,
    Dismiss,
    EditQuery,
    EnterQueryMode,
    Event,
    Failure,
    JumpCursor,
    MoveCursor,
    PreviewTable,
    Quit,
    Refresh,
    RunQuery,
    SelectDatabase,
    SelectEngine,
    SelectTable,
    ShowDatabases,
    SubmitConnection,
    ToggleDebug,
)
from .state import ORIGIN, AppState, Cursor, ErrorInfo, Screen

Effect = Union[Command, Cancel, Export, Exit]
Result = tuple[AppState, list]


def transition(state: AppState, event: Event | CommandOutcome) -> Result:
    if isinstance(event, CommandOutcome):
        return _apply_outcome(state, event)
    if isinstance(event, Quit):
        return _quit(state)
    if isinstance(event, Failure):
        return _fail(state, event.error)

    # Debug overlay on top: it only closes.
    if state.show_debug:
        if isinstance(event, (ToggleDebug, Dismiss, Back)):
            return replace(state, show_debug=False), []
        return state, []
    if isinstance(event, ToggleDebug):
        return replace(state, show_debug=True), []

    if state.error is not None:
        if isinstance(event, Dismiss):
            return replace(state, error=None), []
        return state, []

    if isinstance(event, ShowDatabases):
        return _show_databases(state)
    if isinstance(event, CancelPending):
        return _cancel_pending(state)
    if isinstance(event, MoveCursor):
        return _move_cursor(state, event), []
    if isinstance(event, JumpCursor):
        return _jump_cursor(state, event), []

    handler = _HANDLERS.get((state.screen, type(event)))
    if handler is None:
        return state, []
    return handler(state, event)


# ═══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def _issue(state: AppState, command_cls: type[Command], track: bool = True, **fields) -> tuple[AppState, Command]:
    """Mint the next token and build a command.

    Tracked commands become the pending token of their slot, replacing any
    earlier one (whose outcome will then be dropped).
    """
    seq = state.seq + 1
    command = command_cls(token=CommandToken(command_cls.SLOT, seq), **fields)
    pending = {**state.pending, command_cls.SLOT: command.token} if track else state.pending
    return replace(state, seq=seq, pending=pending), command


def _cancel_all(state: AppState) -> Result:
    effects = [Cancel(token) for token in state.pending.values()]
    return replace(state, pending={}), effects


def _goto(state: AppState, screen: Screen) -> Result:
    """Change screen. Leaving a screen cancels everything it was waiting for."""
    if screen == state.screen:
        return state, []
    state, effects = _cancel_all(state)
    return replace(state, screen=screen), effects


def _back_to(screen: Screen) -> Callable[[AppState, Event], Result]:
    def handler(state: AppState, event: Event) -> Result:
        return _goto(replace(state, status=""), screen)
    return handler


def _disconnected(state: AppState) -> AppState:
    return replace(
        state,
        connected=False,
        server_version="",
        database=None,
        databases=(),
        tables=(),
        schema=None,
        result=None,
    )


def _row_count(state: AppState, screen: Screen) -> int:
    if screen == Screen.ENGINE_SELECT:
        return len(EngineKind)
    if screen == Screen.DATABASE_SELECT:
        return len(state.databases)
    if screen == Screen.TABLE_LIST:
        return len(state.tables)
    if screen == Screen.TABLE_DESCRIBE and state.schema is not None:
        return len(state.schema.columns)
    if screen == Screen.QUERY_RESULT and state.result is not None:
        return len(state.result.rows)
    return 0


def _column_limit(state: AppState, screen: Screen) -> int:
    """Largest first-visible column index for horizontal scrolling."""
    if screen == Screen.QUERY_RESULT and state.result is not None:
        return max(0, len(state.result.columns) - state.max_visible_columns)
    return 0


def _clamp(value: int, count: int) -> int:
    if count <= 0:
        return 0
    return min(max(value, 0), count - 1)


def _select_row(state: AppState, screen: Screen, names: list[str], name: str) -> AppState:
    if name in names:
        return state.with_cursor(screen, Cursor(row=names.index(name)))
    return state


def _error_info(err: DFoxError, over: Screen) -> ErrorInfo:
    return ErrorInfo(title=err.title, kind=err.kind.value, message=err.message, over=over)


# ═══════════════════════════════════════════════════════════════════════════════
# GLOBAL EVENTS
# ═══════════════════════════════════════════════════════════════════════════════

def _quit(state: AppState) -> Result:
    state, effects = _cancel_all(state)
    return replace(state, running=False, status="Goodbye."), effects + [Exit()]


def _show_databases(state: AppState) -> Result:
    if not state.connected:
        return replace(state, status="Not connected: connect to a server first."), []
    state, effects = _goto(replace(state, status=""), Screen.DATABASE_SELECT)
    state, command = _issue(state, ListDatabases)
    return state, effects + [command]


def _cancel_pending(state: AppState) -> Result:
    if not state.pending:
        return state, []
    state, effects = _cancel_all(state)
    return replace(state, status="Cancelled."), effects


def _move_cursor(state: AppState, event: MoveCursor) -> AppState:
    screen = state.screen
    current = state.cursor(screen)
    row = _clamp(current.row + event.rows, _row_count(state, screen))
    column = min(max(current.column + event.columns, 0), _column_limit(state, screen))
    return state.with_cursor(screen, Cursor(row=row, column=column))


def _jump_cursor(state: AppState, event: JumpCursor) -> AppState:
    screen = state.screen
    current = state.cursor(screen)
    row = 0 if event.to == "start" else _clamp(_row_count(state, screen) - 1, _row_count(state, screen))
    return state.with_cursor(screen, Cursor(row=row, column=current.column))


# ═══════════════════════════════════════════════════════════════════════════════
# SCREEN EVENTS
# ═══════════════════════════════════════════════════════════════════════════════

def _select_engine(state: AppState, event: SelectEngine) -> Result:
    engine = EngineKind(event.engine)
    params = state.params
    if engine != state.engine:
        params = replace(params, port=engine.default_port, database=None)
    state = replace(state, engine=engine, params=params, status="")
    state = state.with_cursor(Screen.ENGINE_SELECT, Cursor(row=list(EngineKind).index(engine)))
    return _goto(state, Screen.CONNECTION_INPUT)


def _submit_connection(state: AppState, event: SubmitConnection) -> Result:
    if state.engine is None:
        return replace(state, status="Select a database type first."), []
    state = replace(state, params=event.params, status=f"Connecting to {event.params.redacted()}…")
    state, command = _issue(state, Connect, engine=state.engine, params=event.params)
    return state, [command]


def _select_database(state: AppState, event: SelectDatabase) -> Result:
    state = _select_row(state, Screen.DATABASE_SELECT, [d.name for d in state.databases], event.name)
    state, command = _issue(replace(state, status=""), OpenDatabase, name=event.name)
    return state, [command]


def _refresh_databases(state: AppState, event: Refresh) -> Result:
    state, command = _issue(state, ListDatabases)
    return state, [command]


def _leave_server(state: AppState, event: Back) -> Result:
    state, effects = _goto(replace(state, status="Disconnected."), Screen.CONNECTION_INPUT)
    state, command = _issue(_disconnected(state), Disconnect, track=False)
    return state, effects + [command]


def _select_table(state: AppState, event: SelectTable) -> Result:
    state = _select_row(state, Screen.TABLE_LIST, [t.name for t in state.tables], event.name)
    state, command = _issue(replace(state, status=""), DescribeTable, name=event.name)
    return state, [command]


def _preview_table(state: AppState, event: PreviewTable) -> Result:
    engine = state.engine or EngineKind.POSTGRES
    sql = f"SELECT * FROM {engine.quote(event.name)} LIMIT {state.preview_limit}"
    state = _select_row(state, Screen.TABLE_LIST, [t.name for t in state.tables], event.name)
    state, command = _issue(replace(state, status=""), ExecuteQuery, sql=sql, preview_of=event.name)
    return state, [command]


def _refresh_tables(state: AppState, event: Refresh) -> Result:
    if state.database is None:
        return replace(state, status="No database selected."), []
    state, command = _issue(state, OpenDatabase, name=state.database)
    return state, [command]


def _edit_query(state: AppState, event: EditQuery) -> Result:
    return replace(state, query_text=event.text, status=""), []


def _run_query(state: AppState, event: RunQuery) -> Result:
    if not state.query_text.strip():
        return replace(state, status="Nothing to execute: the query is empty."), []
    state, command = _issue(replace(state, status=""), ExecuteQuery, sql=state.query_text)
    return state, [command]


def _copy_row(state: AppState, event: CopyRow) -> Result:
    row = state.cursor(Screen.QUERY_RESULT).row
    lines = row_lines(state.result, row) if state.result is not None else []
    if not lines:
        return replace(state, status="Nothing to copy."), []
    return replace(state, status=f"Copied row {row + 1}."), [Export(tuple(lines), label=f"row {row + 1}")]


def _copy_all(state: AppState, event: CopyAll) -> Result:
    lines = result_lines(state.result) if state.result is not None else []
    if not lines:
        return replace(state, status="Nothing to copy."), []
    count = len(lines) - 1
    return replace(state, status=f"Copied {count} row(s)."), [Export(tuple(lines), label=f"{count} rows")]


_HANDLERS: dict[tuple[Screen, type], Callable[[AppState, Event], Result]] = {
    (Screen.ENGINE_SELECT, SelectEngine): _select_engine,
    (Screen.CONNECTION_INPUT, SubmitConnection): _submit_connection,
    (Screen.CONNECTION_INPUT, Back): _back_to(Screen.ENGINE_SELECT),
    (Screen.DATABASE_SELECT, SelectDatabase): _select_database,
    (Screen.DATABASE_SELECT, Refresh): _refresh_databases,
    (Screen.DATABASE_SELECT, Back): _leave_server,
    (Screen.TABLE_LIST, SelectTable): _select_table,
    (Screen.TABLE_LIST, PreviewTable): _preview_table,
    (Screen.TABLE_LIST, EnterQueryMode): _back_to(Screen.QUERY_EDITOR),
    (Screen.TABLE_LIST, Refresh): _refresh_tables,
    (Screen.TABLE_LIST, Back): _back_to(Screen.DATABASE_SELECT),
    (Screen.TABLE_DESCRIBE, PreviewTable): _preview_table,
    (Screen.TABLE_DESCRIBE, EnterQueryMode): _back_to(Screen.QUERY_EDITOR),
    (Screen.TABLE_DESCRIBE, Back): _back_to(Screen.TABLE_LIST),
    (Screen.QUERY_EDITOR, EditQuery): _edit_query,
    (Screen.QUERY_EDITOR, RunQuery): _run_query,
    (Screen.QUERY_EDITOR, Back): _back_to(Screen.TABLE_LIST),
    (Screen.QUERY_RESULT, CopyRow): _copy_row,
    (Screen.QUERY_RESULT, CopyAll): _copy_all,
    (Screen.QUERY_RESULT, RunQuery): _run_query,
    (Screen.QUERY_RESULT, EnterQueryMode): _back_to(Screen.QUERY_EDITOR),
    (Screen.QUERY_RESULT, Back): _back_to(Screen.QUERY_EDITOR),
}


# ═══════════════════════════════════════════════════════════════════════════════
# COMMAND OUTCOMES
# ═══════════════════════════════════════════════════════════════════════════════

def _apply_outcome(state: AppState, outcome: CommandOutcome) -> Result:
    slot = outcome.token.slot
    if state.pending.get(slot) != outcome.token:
        # Superseded, cancelled by a screen change, or never tracked.
        return state, []
    state = replace(state, pending={s: t for s, t in state.pending.items() if s != slot})
    if outcome.cancelled:
        return state, []
    if outcome.error is not None:
        return _fail(state, outcome.error)
    handler = _OUTCOME_HANDLERS.get(type(outcome.command))
    if handler is None:
        return state, []
    return handler(state, outcome.command, outcome.value)


def _fail(state: AppState, err: DFoxError) -> Result:
    if isinstance(err, QueryError) and err.connection_dead:
        target = Screen.CONNECTION_INPUT if state.engine is not None else Screen.ENGINE_SELECT
        state, effects = _cancel_all(state)
        state, _ = _goto(state, target)
        state, command = _issue(_disconnected(state), Disconnect, track=False)
        return replace(state, error=_error_info(err, target), status="Connection lost."), effects + [command]
    if isinstance(err, ConnectError):
        state = _disconnected(state)
    return replace(state, error=_error_info(err, state.screen)), []


def _connected(state: AppState, command: Connect, version) -> Result:
    version = version or ""
    state = replace(
        _disconnected(state),
        connected=True,
        server_version=version,
        status=f"Connected to {command.engine.label} {version}".rstrip(),
    )
    state, effects = _goto(state, Screen.DATABASE_SELECT)
    state, listing = _issue(state, ListDatabases)
    return state, effects + [listing]


def _databases_listed(state: AppState, command: ListDatabases, databases) -> Result:
    state = replace(state, databases=tuple(databases))
    return state.with_cursor(Screen.DATABASE_SELECT, ORIGIN), []


def _database_opened(state: AppState, command: OpenDatabase, tables) -> Result:
    tables = tuple(tables)
    state = replace(
        state,
        database=command.name,
        tables=tables,
        schema=None,
        status=f"{command.name}: {len(tables)} table(s)",
    )
    return _goto(state.with_cursor(Screen.TABLE_LIST, ORIGIN), Screen.TABLE_LIST)


def _table_described(state: AppState, command: DescribeTable, schema) -> Result:
    state = replace(state, schema=schema).with_cursor(Screen.TABLE_DESCRIBE, ORIGIN)
    return _goto(state, Screen.TABLE_DESCRIBE)


def _query_executed(state: AppState, command: ExecuteQuery, result) -> Result:
    status = result.summary()
    if command.preview_of:
        status = f"Preview of {command.preview_of}: {status}"
    state = replace(state, result=result, query_text=command.sql, status=status)
    return _goto(state.with_cursor(Screen.QUERY_RESULT, ORIGIN), Screen.QUERY_RESULT)


_OUTCOME_HANDLERS: dict[type, Callable] = {
    Connect: _connected,
    ListDatabases: _databases_listed,
    OpenDatabase: _database_opened,
    DescribeTable: _table_described,
    ExecuteQuery: _query_executed,
}

__all__ = ["Effect", "transition"]
