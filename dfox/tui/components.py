"""Reusable UI components for the TUI."""
from __future__ import annotations

from typing import TYPE_CHECKING

import questionary
from questionary import Choice, Separator
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from .dispatcher import Key

if TYPE_CHECKING:
    from rich.console import Console

    from ..logging import DebugEvent
    from .view import ResultWindow, View


# ═══════════════════════════════════════════════════════════════════════════════
# BRAND STYLING
# ═══════════════════════════════════════════════════════════════════════════════

BRAND_STYLE = questionary.Style([
    ("qmark", "fg:#f77f00 bold"),          # Fox orange accent
    ("question", "bold"),
    ("answer", "fg:#fcbf49 bold"),
    ("highlighted", "fg:#f77f00 bold"),
    ("pointer", "fg:#f77f00 bold"),
    ("selected", "fg:#fcbf49"),
])


# ═══════════════════════════════════════════════════════════════════════════════
# NAVIGATION HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

KEY_PREFIX = "key:"


def key_choice(title: str, key: str) -> Choice:
    """A menu entry that stands for a key press rather than a listed item."""
    return Choice(title=title, value=KEY_PREFIX + key)


def nav_choices(include_separator: bool = True, back: str = "← Back", databases: bool = True) -> list:
    """Standard navigation choices: Back, F1 databases, F12 debug, Quit.

    Append to every screen's menu for consistent navigation. Values are key
    names understood by the dispatcher.
    """
    choices: list = []
    if include_separator:
        choices.append(Separator())
    if back:
        choices.append(key_choice(back, "esc"))
    if databases:
        choices.append(key_choice("Databases (F1)", "f1"))
    choices.extend([
        key_choice("Debug log (F12)", "f12"),
        key_choice("Quit", "quit"),
    ])
    return choices


def key_for(choice: str | None, action: str = "enter") -> Key | None:
    """Turn a select answer into a key.

    Key entries map to their key; anything else is a listed item (a table,
    a database) picked with `action`.
    """
    if choice is None:
        return None
    if choice.startswith(KEY_PREFIX):
        return Key(choice[len(KEY_PREFIX):])
    return Key(action, choice)


# ═══════════════════════════════════════════════════════════════════════════════
# WELCOME BANNER
# ═══════════════════════════════════════════════════════════════════════════════

_BANNER_ART = """\
[bold #f77f00]╔═══════════════════════════════════════════════════════════════╗
║                                                               ║
║     ██████╗ ███████╗ ██████╗ ██╗  ██╗                         ║
║     ██╔══██╗██╔════╝██╔═══██╗╚██╗██╔╝                         ║
║     ██║  ██║█████╗  ██║   ██║ ╚███╔╝                          ║
║     ██║  ██║██╔══╝  ██║   ██║ ██╔██╗                          ║
║     ██████╔╝██║     ╚██████╔╝██╔╝ ██╗                         ║
║     ╚═════╝ ╚═╝      ╚═════╝ ╚═╝  ╚═╝                         ║
║                                                               ║
║     [white]Postgres · MySQL · SQLite in your terminal[/white]              ║
╚═══════════════════════════════════════════════════════════════╝[/bold #f77f00]"""


def render_welcome_banner(console: Console) -> None:
    """Render the styled ASCII welcome banner."""
    console.print(_BANNER_ART)
    console.print()


# ═══════════════════════════════════════════════════════════════════════════════
# HEADER (context bar, breadcrumbs, status)
# ═══════════════════════════════════════════════════════════════════════════════

def render_header(console: Console, view: View) -> None:
    """Render the connection context bar."""
    if view.header == "Not connected":
        content = "  [yellow]Not connected[/yellow]  [dim]→ pick an engine and connect[/dim]"
    else:
        content = f"  [bold]Server[/bold] [cyan]{escape(view.header)}[/cyan]"
    console.print(Panel.fit(content, border_style="dim"))


def render_breadcrumbs(console: Console, view: View) -> None:
    console.print(f"[dim]{escape(view.breadcrumbs)}[/dim]\n")


def render_status(console: Console, view: View) -> None:
    if view.status:
        console.print(f"[bold]›[/bold] {escape(view.status)}")
    console.print(f"[dim]{view.footer}[/dim]\n")


def render_frame(console: Console, view: View) -> None:
    """Clear and draw the chrome shared by every screen."""
    console.clear()
    render_header(console, view)
    render_breadcrumbs(console, view)


# ═══════════════════════════════════════════════════════════════════════════════
# CONTENT
# ═══════════════════════════════════════════════════════════════════════════════

def render_schema_tree(console: Console, view: View) -> None:
    """Tree-like describe view; the first line is the table name."""
    if not view.schema_lines:
        console.print("[dim]No columns.[/dim]")
        return
    tree = Tree(f"[bold cyan]{escape(view.schema_lines[0])}[/bold cyan]")
    for line in view.schema_lines[1:]:
        tree.add(escape(line.strip().lstrip("├└─ ")))
    console.print(tree)
    console.print()


def render_result_table(console: Console, window: ResultWindow, title: str) -> None:
    """Render the visible page of a result; the selected row is highlighted."""
    if not window.total_columns:
        console.print(Panel.fit(f"[green]✓ {escape(window.message)}[/green]", title="Result"))
        console.print()
        return

    table = Table(title=f"[bold]{title}[/bold]", show_lines=False)
    table.add_column("#", style="dim", justify="right", no_wrap=True)
    for name in window.columns:
        table.add_column(name, overflow="ellipsis", max_width=40)

    for offset, row in enumerate(window.rows):
        index = window.first_row + offset
        style = "reverse" if index == window.selected_row else None
        # Cell text is data, never markup.
        cells = [Text(c, style="dim") if c == "NULL" else Text(c) for c in row]
        table.add_row(str(index + 1), *cells, style=style)

    console.print(table)
    console.print(f"[dim]{window.message}[/dim]")
    console.print()


def render_error_panel(console: Console, title: str, kind: str, message: str) -> None:
    """Render a friendly error panel with 3-part structure."""
    content = f"[bold red]✗ {title}[/bold red]\n\n"
    content += f"[yellow]Kind:[/yellow] {kind}\n"
    content += f"[yellow]Cause:[/yellow] {escape(message)}"
    console.print(Panel.fit(content, border_style="red", title="Error"))
    console.print()


def render_debug_table(console: Console, entries: list[DebugEvent], limit: int = 40) -> None:
    """Render the newest debug events, oldest first."""
    table = Table(title="[bold]Debug log[/bold]", show_header=True)
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("Kind", no_wrap=True)
    table.add_column("Message")
    table.add_column("ms", justify="right", style="cyan")

    colors = {"Connect": "green", "Query": "cyan", "Error": "red", "Info": "dim"}
    for entry in entries[-limit:]:
        took = f"{entry.duration * 1000:.0f}" if entry.duration is not None else ""
        color = colors.get(entry.kind, "white")
        table.add_row(entry.at.strftime("%H:%M:%S"), f"[{color}]{entry.kind}[/{color}]", Text(entry.message), took)

    if not entries:
        console.print("[dim]No events yet.[/dim]")
    else:
        console.print(table)
    console.print()
