from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Annotated, Iterator, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import __version__
from .errors import DFoxError
from .logging import DebugLog, setup_logging
from .models import ConnectionParams, EngineKind, QueryResult
from .session import ConnectionSession
from .settings import load_settings

app = typer.Typer(
    add_completion=False,
    help="dfox: browse and query Postgres, MySQL and SQLite from the terminal",
    rich_markup_mode="rich",
)
console = Console()


# ═══════════════════════════════════════════════════════════════════════════════
# SHARED OPTIONS & HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

EngineOpt = Annotated[EngineKind, typer.Option("--engine", "-e", help="Database engine", case_sensitive=False)]
HostOpt = Annotated[Optional[str], typer.Option("--host", help="Server host (default: DFOX_DEFAULT_HOST)")]
PortOpt = Annotated[Optional[int], typer.Option("--port", "-p", help="Server port (default: engine default)")]
UserOpt = Annotated[Optional[str], typer.Option("--user", "-u", help="User name (default: DFOX_DEFAULT_USER)")]
PasswordOpt = Annotated[
    str,
    typer.Option("--password", envvar="DFOX_PASSWORD", help="Password (or set DFOX_PASSWORD)", show_default=False),
]
DatabaseOpt = Annotated[
    Optional[str],
    typer.Option("--database", "-d", help="Database name, or the file path for SQLite"),
]
JsonOpt = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def _params(
    engine: EngineKind,
    host: str | None,
    port: int | None,
    user: str | None,
    password: str,
    database: str | None,
) -> ConnectionParams:
    s = load_settings()
    if engine.is_file_based:
        return ConnectionParams(database=database or ":memory:")
    return ConnectionParams(
        host=host or s.DFOX_DEFAULT_HOST,
        port=port or engine.default_port,
        username=user or s.DFOX_DEFAULT_USER or "",
        secret=password,
        database=database,
    )


@contextmanager
def _session(engine: EngineKind, params: ConnectionParams, use_database: bool = True) -> Iterator[ConnectionSession]:
    """Connected session for one command; errors end the command with code 1."""
    s = load_settings()
    setup_logging(s)
    session = ConnectionSession(debug_log=DebugLog(s.DFOX_DEBUG_BUFFER), connect_timeout=s.DFOX_CONNECT_TIMEOUT)
    try:
        session.connect(engine, params)
        # SQLite opens the file given as --database; MySQL/Postgres switch to it.
        if use_database and params.database and not engine.is_file_based:
            session.use_database(params.database)
        yield session
    except DFoxError as err:
        console.print(f"[red]✗ {err.title}:[/red] {escape(err.message)} [dim]({err.kind.value})[/dim]")
        raise typer.Exit(code=1)
    finally:
        session.disconnect()


def _print_result(result: QueryResult, limit: int) -> None:
    if not result.has_rows:
        console.print(f"[green]✓[/green] {escape(result.summary())}")
        return

    t = Table(title=f"[bold]{escape(result.statement[:60])}[/bold]")
    for name in result.columns:
        t.add_column(name, overflow="fold")
    for row in result.rows[:limit]:
        t.add_row(*[Text(c, style="dim") if c == "NULL" else Text(c) for c in row])
    console.print(t)
    shown = min(limit, len(result.rows))
    console.print(f"[dim]{escape(result.summary())} · showing {shown}. Use --limit to see more.[/dim]")


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN CALLBACK
# ═══════════════════════════════════════════════════════════════════════════════

def _version_callback(value: bool) -> None:
    if value:
        console.print(f"dfox {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
):
    """
    [bold]dfox[/bold]: a terminal client for Postgres, MySQL and SQLite.

    [dim]Run without arguments to launch the interactive TUI.[/dim]

    [bold]Quick Commands:[/bold]
      dfox databases    List databases on a server
      dfox tables       List tables of a database
      dfox describe     Show the columns of a table
      dfox query        Run one SQL statement

    [bold]Examples:[/bold]
      dfox tables -e sqlite -d ./app.db
      dfox query -e postgres -u app -d app_db "SELECT * FROM users LIMIT 5"
    """
    if ctx.invoked_subcommand is None:
        _interactive_menu()
        raise typer.Exit(code=0)


# ═══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════

@app.command("engines", help="List supported engines and their default ports")
def engines():
    t = Table(title="[bold]Engines[/bold]")
    t.add_column("Engine", style="cyan")
    t.add_column("Name")
    t.add_column("Default port", justify="right")
    for kind in EngineKind:
        t.add_row(kind.value, kind.label, str(kind.default_port or "(file)"))
    console.print(t)


@app.command("databases", help="[bold cyan]L[/bold cyan]ist databases visible to the user")
def databases(
    engine: EngineOpt,
    host: HostOpt = None,
    port: PortOpt = None,
    user: UserOpt = None,
    password: PasswordOpt = "",
    database: DatabaseOpt = None,
    json_out: JsonOpt = False,
):
    params = _params(engine, host, port, user, password, database)
    with _session(engine, params, use_database=False) as session:
        found = session.list_databases()

    if json_out:
        print(json.dumps([{"name": d.name, "detail": d.detail} for d in found], ensure_ascii=False, indent=2))
        return

    t = Table(title=f"[bold]Databases on {escape(params.redacted())}[/bold]")
    t.add_column("Name", style="cyan")
    t.add_column("Detail", style="dim")
    for d in found:
        t.add_row(d.name, d.detail)
    console.print(t)


@app.command("tables", help="List [bold cyan]t[/bold cyan]ables of a database")
def tables(
    engine: EngineOpt,
    host: HostOpt = None,
    port: PortOpt = None,
    user: UserOpt = None,
    password: PasswordOpt = "",
    database: DatabaseOpt = None,
    json_out: JsonOpt = False,
):
    params = _params(engine, host, port, user, password, database)
    with _session(engine, params) as session:
        found = session.list_tables()
        current = session.current_database()

    if json_out:
        print(json.dumps([{"name": t.name, "kind": t.kind} for t in found], ensure_ascii=False, indent=2))
        return

    if not found:
        console.print(f"[yellow]No tables in[/yellow] {escape(str(current))}")
        return
    t = Table(title=f"[bold]Tables in {escape(str(current))}[/bold]")
    t.add_column("Name", style="cyan")
    t.add_column("Kind", style="dim")
    for item in found:
        t.add_row(item.name, item.kind)
    console.print(t)


@app.command("describe", help="[bold cyan]D[/bold cyan]escribe the columns of a table")
def describe(
    table: Annotated[str, typer.Argument(help="Table name")],
    engine: EngineOpt,
    host: HostOpt = None,
    port: PortOpt = None,
    user: UserOpt = None,
    password: PasswordOpt = "",
    database: DatabaseOpt = None,
    json_out: JsonOpt = False,
):
    params = _params(engine, host, port, user, password, database)
    with _session(engine, params) as session:
        schema = session.describe_table(table)

    if json_out:
        columns = [
            {
                "name": c.name,
                "type": c.data_type,
                "nullable": c.nullable,
                "default": c.default,
                "primary_key": c.primary_key,
            }
            for c in schema.columns
        ]
        print(json.dumps({"table": schema.table_name, "columns": columns}, ensure_ascii=False, indent=2))
        return

    console.print(Panel.fit(escape("\n".join(schema.tree_lines())), border_style="cyan"))


@app.command("query", help="Run one SQL statement and print the result")
@app.command("sql", hidden=True)  # Alias
def query(
    sql: Annotated[str, typer.Argument(help="SQL statement")],
    engine: EngineOpt,
    host: HostOpt = None,
    port: PortOpt = None,
    user: UserOpt = None,
    password: PasswordOpt = "",
    database: DatabaseOpt = None,
    limit: Annotated[int, typer.Option("-n", "--limit", help="Max rows to print")] = 100,
    json_out: JsonOpt = False,
):
    params = _params(engine, host, port, user, password, database)
    with _session(engine, params) as session:
        result = session.execute_query(sql)

    if json_out:
        payload = {
            "columns": list(result.columns),
            "rows": [list(r) for r in result.rows],
            "row_count": result.row_count,
            "elapsed": result.elapsed,
            "message": result.message,
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    _print_result(result, limit)


# ═══════════════════════════════════════════════════════════════════════════════
# INTERACTIVE TUI
# ═══════════════════════════════════════════════════════════════════════════════

def _interactive_menu() -> None:
    """Launch the TUI: router loop over the state machine."""
    from .runner import AsyncCommandRunner
    from .tui.router import Router
    from .tui.state import initial_state
    # Import screens to register them
    from .tui import screens  # noqa: F401

    settings = load_settings()
    setup_logging(settings)
    debug_log = DebugLog(settings.DFOX_DEBUG_BUFFER)
    session = ConnectionSession(debug_log=debug_log, connect_timeout=settings.DFOX_CONNECT_TIMEOUT)
    runner = AsyncCommandRunner(session)
    router = Router(
        console=console,
        settings=settings,
        runner=runner,
        debug_log=debug_log,
        state=initial_state(settings),
    )

    try:
        router.run()
    except KeyboardInterrupt:
        console.print("\n[dim]👋 Interrupted. Goodbye![/]")


def main():
    app()
