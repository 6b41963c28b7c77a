"""Breadcrumbs for the screen workflow."""
from __future__ import annotations

from .state import AppState, Screen


class Navigator:
    """Derives the navigation stack from the current screen.

    The workflow is fixed, so the stack is not stored: each screen has one
    parent and Back always leads there.
    - Engine > Connection > Databases > Tables
    - Tables > Describe
    - Tables > Query > Result
    """

    # Screen tag to human-readable label mapping
    SCREEN_LABELS = {
        Screen.ENGINE_SELECT: "Engine",
        Screen.CONNECTION_INPUT: "Connection",
        Screen.DATABASE_SELECT: "Databases",
        Screen.TABLE_LIST: "Tables",
        Screen.TABLE_DESCRIBE: "Describe",
        Screen.QUERY_EDITOR: "Query",
        Screen.QUERY_RESULT: "Result",
        Screen.ERROR_OVERLAY: "Error",
        Screen.DEBUG_OVERLAY: "Debug log",
    }

    PARENTS = {
        Screen.CONNECTION_INPUT: Screen.ENGINE_SELECT,
        Screen.DATABASE_SELECT: Screen.CONNECTION_INPUT,
        Screen.TABLE_LIST: Screen.DATABASE_SELECT,
        Screen.TABLE_DESCRIBE: Screen.TABLE_LIST,
        Screen.QUERY_EDITOR: Screen.TABLE_LIST,
        Screen.QUERY_RESULT: Screen.QUERY_EDITOR,
    }

    def stack(self, screen: Screen) -> list[Screen]:
        """Screens from the root down to `screen`."""
        path = [screen]
        while path[-1] in self.PARENTS:
            path.append(self.PARENTS[path[-1]])
        return list(reversed(path))

    def parent(self, screen: Screen) -> Screen | None:
        return self.PARENTS.get(screen)

    def depth(self, screen: Screen) -> int:
        return len(self.stack(screen))

    def label(self, screen: Screen, state: AppState | None = None) -> str:
        """Label for one crumb; names the engine, server, database or table when known."""
        if state is not None:
            if screen == Screen.CONNECTION_INPUT and state.engine is not None:
                return state.engine.label
            if screen == Screen.DATABASE_SELECT and state.connected:
                return state.params.redacted()
            if screen == Screen.TABLE_LIST and state.database:
                return state.database
            if screen == Screen.TABLE_DESCRIBE and state.schema is not None:
                return state.schema.table_name
        return self.SCREEN_LABELS.get(screen, str(screen.value))

    def breadcrumbs(self, state: AppState) -> str:
        """Breadcrumb path like "PostgreSQL > localhost:5432 > app_db > users"."""
        crumbs = [self.label(screen, state) for screen in self.stack(state.screen)]
        if state.error is not None:
            crumbs.append(self.SCREEN_LABELS[Screen.ERROR_OVERLAY])
        if state.show_debug:
            crumbs.append(self.SCREEN_LABELS[Screen.DEBUG_OVERLAY])
        return " > ".join(crumbs)
