"""Main router and screen registry for the TUI."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

import questionary
from questionary import Choice

from ..commands import Cancel, Command, Exit, Export
from ..errors import QueryError, QueryErrorKind
from ..export import write_lines
from .components import BRAND_STYLE, render_frame, render_status
from .dispatcher import EventDispatcher, Key
from .events import Event, Failure
from .machine import transition
from .state import AppState, Screen, initial_state
from .view import View, render

if TYPE_CHECKING:
    from rich.console import Console

    from ..logging import DebugLog
    from ..runner import AsyncCommandRunner, CommandOutcome
    from ..settings import Settings

logger = logging.getLogger(__name__)

# Seconds Quit waits for a busy connection before abandoning it.
SHUTDOWN_WAIT = 0.5


class Router:
    """Main loop: apply outcomes, render, read one key, dispatch, transition.

    Screen functions draw a `View` and return the key the operator pressed.
    While the state waits on database work the router shows a spinner and
    polls the runner instead of calling a screen, so outcomes land without
    any input.
    """

    def __init__(
        self,
        console: Console,
        settings: Settings,
        runner: AsyncCommandRunner,
        debug_log: DebugLog,
        state: AppState | None = None,
        dispatcher: EventDispatcher | None = None,
        poll_interval: float = 0.1,
    ):
        """Initialize router with dependencies.

        Args:
            console: Rich Console for output
            settings: Application settings
            runner: Executes commands emitted by transitions
            debug_log: Sink shown by the debug overlay
            state: Starting state (defaults from settings)
            dispatcher: Key to event mapping
            poll_interval: Seconds between outcome polls while busy
        """
        self.console = console
        self.settings = settings
        self.runner = runner
        self.debug_log = debug_log
        self.state = state or initial_state(settings)
        self.dispatcher = dispatcher or EventDispatcher()
        self.poll_interval = poll_interval
        self._closed = False

    def run(self) -> None:
        """Run the main loop until a Quit transition."""
        try:
            while self.state.running:
                self.pump()
                view = render(self.state)
                if view.busy and not view.screen.is_overlay:
                    key = self._wait(view)
                else:
                    key = self._show(view)
                self.feed(key)
        finally:
            self._shutdown()
        self.console.print("\n[dim]👋 Goodbye![/]")

    # ── state plumbing ─────────────────────────────────────────────────

    def apply(self, event: Event | CommandOutcome) -> None:
        """Run one transition and carry out its effects."""
        self.state, effects = transition(self.state, event)
        for effect in effects:
            self._perform(effect)

    def feed(self, key: Key | None) -> None:
        for event in self.dispatcher.dispatch(self.state, key):
            self.apply(event)

    def pump(self) -> int:
        """Apply every outcome that is already waiting; returns how many."""
        outcomes = self.runner.drain()
        for outcome in outcomes:
            self.apply(outcome)
        return len(outcomes)

    def _perform(self, effect) -> None:
        if isinstance(effect, Command):
            self.runner.submit(effect)
        elif isinstance(effect, Cancel):
            self.runner.cancel(effect.token)
        elif isinstance(effect, Export):
            self._export(effect)
        elif isinstance(effect, Exit):
            self._shutdown()
        else:
            logger.warning("Ignoring unknown effect %r", effect)

    def _export(self, effect: Export) -> None:
        try:
            path = write_lines(self.settings.DFOX_EXPORT_PATH, effect.lines)
        except OSError as exc:
            logger.exception("Export failed")
            self.apply(Failure(QueryError(QueryErrorKind.OTHER, f"Could not write export file: {exc}")))
            return
        self.debug_log.info(f"exported {effect.label or 'lines'} to {path}")

    def _shutdown(self) -> None:
        """Cancel outstanding work and close the connection. Runs once."""
        if self._closed:
            return
        self._closed = True
        self.runner.shutdown(wait=SHUTDOWN_WAIT)
        self.runner.session.disconnect(timeout=SHUTDOWN_WAIT)

    # ── input ──────────────────────────────────────────────────────────

    def _show(self, view: View) -> Key | None:
        screen_fn = SCREENS.get(view.screen)
        if screen_fn is None:
            # Unknown screen - nothing can draw it
            self.console.print(f"[yellow]Warning:[/yellow] Unknown screen '{view.screen.value}', exiting")
            return Key("quit")
        try:
            return screen_fn(self, view)
        except KeyboardInterrupt:
            # Ctrl+C at a prompt means Back
            return Key("esc")
        except Exception as exc:
            logger.exception("Screen %s failed", view.screen.value)
            self.apply(Failure(QueryError(QueryErrorKind.OTHER, f"{type(exc).__name__}: {exc}")))
            return None

    def _wait(self, view: View) -> Key | None:
        """Spin until an outcome arrives; Ctrl+C offers what to do instead."""
        render_frame(self.console, view)
        render_status(self.console, view)
        try:
            with self.console.status(f"[bold]{view.busy_label}[/bold] [dim](Ctrl+C for options)[/dim]", spinner="dots"):
                while self.state.busy:
                    outcome = self.runner.poll(timeout=self.poll_interval)
                    if outcome is not None:
                        self.apply(outcome)
                        return None
        except KeyboardInterrupt:
            return self._busy_menu(view)
        return None

    def _busy_menu(self, view: View) -> Key | None:
        choice = questionary.select(
            f"{view.busy_label} What now?",
            choices=[
                Choice("Keep waiting", value="wait"),
                Choice("Cancel", value="cancel"),
                Choice("Databases (F1)", value="f1"),
                Choice("Debug log (F12)", value="f12"),
                Choice("Quit", value="quit"),
            ],
            style=BRAND_STYLE,
        ).ask()
        if choice == "wait":
            return None
        if choice is None:
            return Key("cancel")
        return Key(choice)


# Screen registry - maps screen tags to handler functions
SCREENS: dict[Screen, Callable[[Router, View], Key | None]] = {}


def register_screen(screen_id: Screen):
    """Decorator to register a screen function.

    Usage:
        @register_screen(Screen.TABLE_LIST)
        def show_tables(router: Router, view: View) -> Key | None:
            ...
    """
    def decorator(fn: Callable[[Router, View], Key | None]):
        SCREENS[screen_id] = fn
        return fn
    return decorator
