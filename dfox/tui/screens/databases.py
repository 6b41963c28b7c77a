"""Database list of the live connection."""
from __future__ import annotations

import questionary

from ..components import (
    BRAND_STYLE,
    key_choice,
    key_for,
    nav_choices,
    render_frame,
    render_status,
)
from ..dispatcher import Key
from ..router import Router, register_screen
from ..state import Screen
from ..view import View


@register_screen(Screen.DATABASE_SELECT)
def show_databases(router: Router, view: View) -> Key | None:
    render_frame(router.console, view)
    render_status(router.console, view)

    if not view.items:
        router.console.print("[yellow]No databases visible to this user.[/yellow]\n")

    width = max((len(name) for name in view.items), default=0) + 2
    choices = [
        *[
            questionary.Choice(f"{name:<{width}}{detail}", value=name)
            for name, detail in zip(view.items, view.details)
        ],
        questionary.Separator(),
        key_choice("Refresh (r)", "r"),
        *nav_choices(include_separator=False, back="← Disconnect", databases=False),
    ]

    choice = questionary.select(
        view.title,
        choices=choices,
        default=view.selected_item,
        style=BRAND_STYLE,
    ).ask()

    if choice is None:
        return Key("esc")
    return key_for(choice)
