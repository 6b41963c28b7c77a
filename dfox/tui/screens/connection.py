"""Connection form for the selected engine."""
from __future__ import annotations

import questionary
from rich.markup import escape
from rich.panel import Panel

from ...models import ConnectionParams, EngineKind
from ..components import BRAND_STYLE, key_for, nav_choices, render_frame, render_status
from ..dispatcher import Key
from ..router import Router, register_screen
from ..state import Screen
from ..view import View


def _valid_port(text: str) -> bool | str:
    text = text.strip()
    if not text:
        return True
    if text.isdigit() and 0 < int(text) < 65536:
        return True
    return "Port must be a number between 1 and 65535"


def ask_params(engine: EngineKind, params: ConnectionParams) -> ConnectionParams:
    """Prompt for connection details, pre-filled with `params`.

    Raises KeyboardInterrupt when the operator aborts a prompt.
    """
    if engine.is_file_based:
        path = questionary.path(
            "Database file (or :memory:)",
            default=params.database or "",
            style=BRAND_STYLE,
        ).unsafe_ask()
        return ConnectionParams(database=path.strip() or ":memory:")

    host = questionary.text("Host", default=params.host or "localhost", style=BRAND_STYLE).unsafe_ask()
    port = questionary.text(
        "Port",
        default=str(params.port or engine.default_port or ""),
        validate=_valid_port,
        style=BRAND_STYLE,
    ).unsafe_ask()
    user = questionary.text("User", default=params.username, style=BRAND_STYLE).unsafe_ask()
    secret = questionary.password("Password", default=params.secret, style=BRAND_STYLE).unsafe_ask()
    database = questionary.text(
        "Database (optional)",
        default=params.database or "",
        style=BRAND_STYLE,
    ).unsafe_ask()
    return ConnectionParams(
        host=host.strip() or "localhost",
        port=int(port) if port.strip() else engine.default_port,
        username=user.strip(),
        secret=secret,
        database=database.strip() or None,
    )


@register_screen(Screen.CONNECTION_INPUT)
def show_connection(router: Router, view: View) -> Key | None:
    """Fill in the form (pre-filled with the last values), then confirm."""
    render_frame(router.console, view)
    render_status(router.console, view)
    if view.engine is None:
        return Key("esc")

    params = view.params
    while True:
        params = ask_params(view.engine, params)
        router.console.print(
            Panel.fit(f"[bold]{view.engine.label}[/bold]  {escape(params.redacted())}", border_style="dim")
        )
        choice = questionary.select(
            view.title,
            choices=[
                questionary.Choice("Connect", value="connect"),
                questionary.Choice("Edit again", value="edit"),
                *nav_choices(databases=False),
            ],
            style=BRAND_STYLE,
        ).ask()
        if choice == "edit":
            continue
        if choice == "connect":
            return Key("submit", params)
        if choice is None:
            return Key("esc")
        return key_for(choice)
