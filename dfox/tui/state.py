"""Application state: one immutable value replaced wholesale by transitions."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping

from ..commands import CommandToken, Slot
from ..models import (
    ConnectionParams,
    DatabaseSummary,
    EngineKind,
    QueryResult,
    TableSchema,
    TableSummary,
)


class Screen(str, Enum):
    ENGINE_SELECT = "engine_select"
    CONNECTION_INPUT = "connection_input"
    DATABASE_SELECT = "database_select"
    TABLE_LIST = "table_list"
    TABLE_DESCRIBE = "table_describe"
    QUERY_EDITOR = "query_editor"
    QUERY_RESULT = "query_result"
    ERROR_OVERLAY = "error_overlay"
    DEBUG_OVERLAY = "debug_overlay"

    @property
    def is_overlay(self) -> bool:
        return self in (Screen.ERROR_OVERLAY, Screen.DEBUG_OVERLAY)


@dataclass(frozen=True)
class Cursor:
    row: int = 0
    column: int = 0


ORIGIN = Cursor()


@dataclass(frozen=True)
class ErrorInfo:
    """Payload of the error overlay."""

    title: str
    kind: str
    message: str
    # Screen the overlay was opened over.
    over: Screen


@dataclass(frozen=True)
class AppState:
    screen: Screen = Screen.ENGINE_SELECT
    engine: EngineKind | None = None
    params: ConnectionParams = field(default_factory=ConnectionParams)
    connected: bool = False
    server_version: str = ""
    database: str | None = None
    databases: tuple[DatabaseSummary, ...] = ()
    tables: tuple[TableSummary, ...] = ()
    schema: TableSchema | None = None
    result: QueryResult | None = None
    query_text: str = ""
    cursors: Mapping[Screen, Cursor] = field(default_factory=dict)
    pending: Mapping[Slot, CommandToken] = field(default_factory=dict)
    seq: int = 0
    error: ErrorInfo | None = None
    show_debug: bool = False
    status: str = ""
    page_size: int = 20
    max_visible_columns: int = 8
    preview_limit: int = 100
    running: bool = True

    def cursor(self, screen: Screen | None = None) -> Cursor:
        return self.cursors.get(screen or self.screen, ORIGIN)

    def with_cursor(self, screen: Screen, cursor: Cursor) -> AppState:
        return replace(self, cursors={**self.cursors, screen: cursor})

    @property
    def top_screen(self) -> Screen:
        """What is drawn: the debug overlay, else the error overlay, else the screen."""
        if self.show_debug:
            return Screen.DEBUG_OVERLAY
        if self.error is not None:
            return Screen.ERROR_OVERLAY
        return self.screen

    @property
    def busy(self) -> bool:
        return bool(self.pending)

    def is_pending(self, slot: Slot) -> bool:
        return slot in self.pending


def initial_state(settings=None) -> AppState:
    """EngineSelect, not connected; view limits and form defaults from settings."""
    if settings is None:
        return AppState()
    return AppState(
        params=ConnectionParams(
            host=settings.DFOX_DEFAULT_HOST or "localhost",
            username=settings.DFOX_DEFAULT_USER or "",
        ),
        page_size=max(1, settings.DFOX_PAGE_SIZE),
        max_visible_columns=max(1, settings.DFOX_MAX_VISIBLE_COLUMNS),
        preview_limit=max(1, settings.DFOX_PREVIEW_LIMIT),
    )
