"""Table list of the active database and the describe view."""
from __future__ import annotations

import questionary

from ..components import (
    BRAND_STYLE,
    key_choice,
    key_for,
    nav_choices,
    render_frame,
    render_schema_tree,
    render_status,
)
from ..dispatcher import Key
from ..router import Router, register_screen
from ..state import Screen
from ..view import View


@register_screen(Screen.TABLE_LIST)
def show_tables(router: Router, view: View) -> Key | None:
    """Pick a table, then describe or preview it."""
    render_frame(router.console, view)
    render_status(router.console, view)

    choices = [
        key_choice("Open SQL editor (i)", "i"),
        key_choice("Refresh (r)", "r"),
        questionary.Separator("── Tables ──"),
    ]
    if view.items:
        choices.extend(
            questionary.Choice(f"{name}  ({kind})" if kind != "table" else name, value=name)
            for name, kind in zip(view.items, view.details)
        )
    else:
        choices.append(questionary.Separator("   (no tables)"))
    choices.extend(nav_choices())

    choice = questionary.select(
        view.title,
        choices=choices,
        default=view.selected_item,
        style=BRAND_STYLE,
    ).ask()

    if choice is None:
        return Key("esc")
    key = key_for(choice)
    if key is None or key.name != "enter":
        return key

    action = questionary.select(
        f"{key.value}:",
        choices=[
            key_choice("Describe structure", "enter"),
            key_choice("Preview rows", "p"),
            key_choice("← Back to tables", "none"),
        ],
        style=BRAND_STYLE,
    ).ask()
    picked = key_for(action)
    if picked is None or picked.name == "none":
        return None
    return Key(picked.name, key.value)


@register_screen(Screen.TABLE_DESCRIBE)
def show_describe(router: Router, view: View) -> Key | None:
    render_frame(router.console, view)
    render_schema_tree(router.console, view)
    render_status(router.console, view)

    choice = questionary.select(
        view.title,
        choices=[
            key_choice("Preview rows (p)", "p"),
            key_choice("Open SQL editor (i)", "i"),
            *nav_choices(),
        ],
        style=BRAND_STYLE,
    ).ask()

    if choice is None:
        return Key("esc")
    return key_for(choice)
