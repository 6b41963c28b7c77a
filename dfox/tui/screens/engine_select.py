"""Engine selection: the entry point of the TUI."""
from __future__ import annotations

import questionary

from ...models import EngineKind
from ..components import (
    BRAND_STYLE,
    key_for,
    nav_choices,
    render_header,
    render_status,
    render_welcome_banner,
)
from ..dispatcher import Key
from ..router import Router, register_screen
from ..state import Screen
from ..view import View


@register_screen(Screen.ENGINE_SELECT)
def show_engine_select(router: Router, view: View) -> Key | None:
    """Pick Postgres, MySQL or SQLite."""
    router.console.clear()
    render_welcome_banner(router.console)
    render_header(router.console, view)
    render_status(router.console, view)

    choices = [
        questionary.Separator("── Engines ──"),
        *[
            questionary.Choice(
                f"{kind.label} (port {kind.default_port})" if kind.default_port else f"{kind.label} (file)",
                value=kind.value,
            )
            for kind in EngineKind
        ],
        *nav_choices(back="", databases=False),
    ]

    choice = questionary.select(
        view.title,
        choices=choices,
        default=view.details[view.cursor.row] if view.details else None,
        style=BRAND_STYLE,
    ).ask()

    if choice is None:
        # Ctrl+C on the first screen leaves the app
        return Key("quit")
    return key_for(choice)
