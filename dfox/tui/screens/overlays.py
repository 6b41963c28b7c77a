"""Modal overlays: the error panel and the F12 debug log."""
from __future__ import annotations

import questionary

from ..components import (
    BRAND_STYLE,
    key_choice,
    key_for,
    render_debug_table,
    render_error_panel,
    render_frame,
)
from ..dispatcher import Key
from ..router import Router, register_screen
from ..state import Screen
from ..view import View


@register_screen(Screen.ERROR_OVERLAY)
def show_error(router: Router, view: View) -> Key | None:
    render_frame(router.console, view)
    if view.error is not None:
        render_error_panel(router.console, view.error.title, view.error.kind, view.error.message)

    choice = questionary.select(
        "What now?",
        choices=[
            key_choice("Dismiss", "esc"),
            key_choice("Debug log (F12)", "f12"),
            key_choice("Quit", "quit"),
        ],
        style=BRAND_STYLE,
    ).ask()

    if choice is None:
        return Key("esc")
    return key_for(choice)


@register_screen(Screen.DEBUG_OVERLAY)
def show_debug(router: Router, view: View) -> Key | None:
    render_frame(router.console, view)
    render_debug_table(router.console, router.debug_log.entries())
    router.console.print(f"[dim]{len(router.debug_log)} event(s) kept · full log in {router.settings.DFOX_LOG_DIR}[/dim]\n")

    choice = questionary.select(
        "Debug log",
        choices=[
            key_choice("Refresh", "refresh"),
            key_choice("Close (F12)", "f12"),
            key_choice("Quit", "quit"),
        ],
        style=BRAND_STYLE,
    ).ask()

    if choice is None:
        return Key("esc")
    key = key_for(choice)
    if key.name == "refresh":
        return None
    return key
