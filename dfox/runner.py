"""Run session commands off the interactive thread.

One daemon worker per slot pulls jobs from its own queue and posts a
`CommandOutcome` to a shared bounded queue. The router polls that queue from
the render loop, so input handling never waits on the database.
"""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any

from .commands import Command, CommandToken, Slot
from .errors import DFoxError, QueryError, QueryErrorKind
from .session import ConnectionSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandOutcome:
    """Result of one submission, delivered back to the state machine."""

    token: CommandToken
    command: Command
    value: Any = None
    error: DFoxError | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class _Job:
    __slots__ = ("command", "running", "done", "cancelled", "interrupt_done")

    def __init__(self, command: Command):
        self.command = command
        self.running = False
        self.done = False
        self.cancelled = False
        # Cleared while an interrupt aimed at this job is in flight.
        self.interrupt_done = threading.Event()
        self.interrupt_done.set()


class AsyncCommandRunner:
    def __init__(self, session: ConnectionSession, max_outcomes: int = 64):
        self.session = session
        self.outcomes: queue.Queue[CommandOutcome] = queue.Queue(maxsize=max_outcomes)
        self._lock = threading.Lock()
        self._queues: dict[Slot, queue.Queue] = {}
        self._workers: dict[Slot, threading.Thread] = {}
        # Latest outstanding job per slot, and every live job by token.
        self._pending: dict[Slot, _Job] = {}
        self._jobs: dict[CommandToken, _Job] = {}
        self._closed = False

        for slot in Slot:
            jobs: queue.Queue = queue.Queue()
            worker = threading.Thread(
                target=self._work,
                args=(slot, jobs),
                name=f"dfox-{slot.value}",
                daemon=True,
            )
            self._queues[slot] = jobs
            self._workers[slot] = worker
            worker.start()

    def __enter__(self) -> AsyncCommandRunner:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.shutdown()
        return False

    # ── submission / cancellation ──────────────────────────────────────

    def submit(self, command: Command) -> CommandToken:
        """Queue `command` on its slot and return its token immediately.

        Whatever was still outstanding on the same slot is cancelled first.
        """
        slot = command.slot
        job = _Job(command)
        with self._lock:
            if self._closed:
                raise RuntimeError("runner is shut down")
            previous = self._pending.get(slot)
            if previous is not None:
                self._cancel_job(previous)
            self._pending[slot] = job
            self._jobs[command.token] = job
        logger.debug("submit %s (%s)", command.token, command.describe())
        self._queues[slot].put(job)
        return command.token

    def cancel(self, token: CommandToken) -> bool:
        """Cancel one submission. Returns False when it already finished."""
        with self._lock:
            job = self._jobs.get(token)
            if job is None or job.done or job.cancelled:
                return False
            self._cancel_job(job)
            return True

    def cancel_all(self, interrupt_all: bool = False) -> None:
        """Cancel every live job.

        With `interrupt_all`, every running job is interrupted, including
        commands that are not normally interruptible and jobs that were
        already cancelled (used on shutdown).
        """
        with self._lock:
            for job in list(self._jobs.values()):
                if job.done:
                    continue
                if not job.cancelled:
                    self._cancel_job(job)
                if interrupt_all and job.running and job.interrupt_done.is_set():
                    self._start_interrupt(job)

    def _cancel_job(self, job: _Job) -> None:
        # Caller holds self._lock.
        job.cancelled = True
        slot = job.command.slot
        if self._pending.get(slot) is job:
            del self._pending[slot]
        logger.debug("cancel %s (running=%s)", job.command.token, job.running)
        if job.running and job.command.INTERRUPTIBLE:
            self._start_interrupt(job)

    def _start_interrupt(self, job: _Job) -> None:
        # Caller holds self._lock.
        # Interrupting may open a second connection (MySQL), keep it off the loop.
        job.interrupt_done.clear()
        threading.Thread(target=self._interrupt, args=(job,), name="dfox-interrupt", daemon=True).start()

    def _interrupt(self, job: _Job) -> None:
        """Interrupt the statement of `job`, unless it has already finished.

        The slot worker waits on `job.interrupt_done` before it starts the next
        job, so the interrupt can only reach the statement it was meant for.
        """
        try:
            with self._lock:
                if not job.running:
                    logger.debug("skip interrupt of %s: already finished", job.command.token)
                    return
            self.session.interrupt()
        except Exception:
            logger.exception("Interrupt of %s failed", job.command.token)
        finally:
            job.interrupt_done.set()

    # ── outcomes ───────────────────────────────────────────────────────

    def poll(self, timeout: float | None = 0.0) -> CommandOutcome | None:
        """Next outcome, or None if nothing arrives within `timeout` seconds."""
        try:
            if timeout is not None and timeout <= 0:
                return self.outcomes.get_nowait()
            return self.outcomes.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[CommandOutcome]:
        ready = []
        while True:
            outcome = self.poll()
            if outcome is None:
                return ready
            ready.append(outcome)

    def pending(self) -> list[CommandToken]:
        with self._lock:
            return [job.command.token for job in self._jobs.values() if not job.done and not job.cancelled]

    def is_idle(self) -> bool:
        return not self.pending()

    def shutdown(self, wait: float = 0.5) -> None:
        """Cancel everything and stop the workers.

        Every running job is interrupted. Workers still stuck inside a driver
        call are daemon threads; they are given `wait` seconds and then
        abandoned.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.cancel_all(interrupt_all=True)
        for jobs in self._queues.values():
            jobs.put(None)
        for worker in self._workers.values():
            worker.join(timeout=wait)
        logger.info("Command runner stopped")

    # ── worker ─────────────────────────────────────────────────────────

    def _work(self, slot: Slot, jobs: queue.Queue) -> None:
        last: _Job | None = None
        while True:
            job = jobs.get()
            if job is None:
                return
            if last is not None:
                # An interrupt still aimed at the previous statement must not
                # land on this one.
                last.interrupt_done.wait()

            command = job.command
            with self._lock:
                if job.cancelled:
                    # Never started: dropped without an outcome.
                    job.done = True
                    self._jobs.pop(command.token, None)
                    continue
                job.running = True
            last = job

            value, error = None, None
            try:
                value = command.run(self.session)
            except DFoxError as err:
                error = err
            except Exception as exc:
                logger.exception("Unexpected failure in %s", command.describe())
                error = QueryError(QueryErrorKind.OTHER, str(exc) or type(exc).__name__)

            with self._lock:
                job.running = False
                job.done = True
                cancelled = job.cancelled
                if self._pending.get(slot) is job:
                    del self._pending[slot]
                self._jobs.pop(command.token, None)

            self.outcomes.put(
                CommandOutcome(token=command.token, command=command, value=value, error=error, cancelled=cancelled)
            )
