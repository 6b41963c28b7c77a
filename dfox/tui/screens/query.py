"""SQL editor and result grid."""
from __future__ import annotations

import questionary
from rich.panel import Panel
from rich.syntax import Syntax

from ..components import (
    BRAND_STYLE,
    key_choice,
    key_for,
    nav_choices,
    render_frame,
    render_result_table,
    render_status,
)
from ..dispatcher import Key
from ..router import Router, register_screen
from ..state import Screen
from ..view import View


def ask_sql(current: str) -> str:
    """Multiline SQL prompt; Esc then Enter submits (prompt_toolkit convention)."""
    return questionary.text(
        "SQL",
        default=current,
        multiline=True,
        instruction="(Esc then Enter to finish)",
        style=BRAND_STYLE,
    ).unsafe_ask()


@register_screen(Screen.QUERY_EDITOR)
def show_query_editor(router: Router, view: View) -> Key | None:
    render_frame(router.console, view)
    if view.query_text.strip():
        router.console.print(Panel(Syntax(view.query_text, "sql", word_wrap=True), title="Query", border_style="dim"))
    else:
        router.console.print("[dim]No query yet.[/dim]\n")
    render_status(router.console, view)

    choice = questionary.select(
        view.title,
        choices=[
            key_choice("Write and run", "edit_run"),
            key_choice("Edit only", "edit"),
            key_choice("Run (F5)", "f5"),
            *nav_choices(back="← Back to tables"),
        ],
        style=BRAND_STYLE,
    ).ask()

    if choice is None:
        return Key("esc")
    key = key_for(choice)
    if key.name == "edit_run":
        return Key("f5", ask_sql(view.query_text))
    if key.name == "edit":
        return Key("text", ask_sql(view.query_text))
    return key


# Value of each result action is the key it stands for.
RESULT_ACTIONS = [
    ("↓ Next row", "down"),
    ("↑ Previous row", "up"),
    ("⇟ Next page", "pagedown"),
    ("⇞ Previous page", "pageup"),
    ("⤒ First row", "home"),
    ("⤓ Last row", "end"),
    ("→ Scroll columns right", "right"),
    ("← Scroll columns left", "left"),
    ("Copy selected row (Ctrl+C)", "ctrl+c"),
    ("Copy all rows (Ctrl+A)", "ctrl+a"),
    ("Edit query (i)", "i"),
    ("Run again (F5)", "f5"),
]


@register_screen(Screen.QUERY_RESULT)
def show_query_result(router: Router, view: View) -> Key | None:
    render_frame(router.console, view)
    if view.window is not None:
        render_result_table(router.console, view.window, view.title)
    render_status(router.console, view)

    choices = [key_choice(title, key) for title, key in RESULT_ACTIONS]
    if view.window is None or not view.window.total_columns:
        # Statement results have no grid to move in.
        choices = [key_choice(title, key) for title, key in RESULT_ACTIONS if key in {"i", "f5"}]

    choice = questionary.select(
        view.title,
        choices=[*choices, *nav_choices(back="← Back to editor")],
        style=BRAND_STYLE,
    ).ask()

    if choice is None:
        return Key("esc")
    return key_for(choice)
