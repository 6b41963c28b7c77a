from __future__ import annotations

import logging
import os
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from .settings import Settings


def _resolve_log_dir(settings: object) -> Path:
    """Resolve the log directory.

    - `~` is expanded.
    - Relative paths are taken relative to the current working directory.
    """

    raw = getattr(settings, "DFOX_LOG_DIR", Path("~/.dfox/logs"))
    p = raw if isinstance(raw, Path) else Path(str(raw))
    return p.expanduser()


def setup_logging(settings: Settings) -> Path:
    """Configure Python logging to write to a rotating diagnostic log file.

    Returns the resolved log file path.

    Rotation:
      - Daily rotation at midnight.
      - Keep the last `DFOX_LOG_BACKUP_COUNT` rotated files.

    Notes:
      - No console handler: the TUI owns the terminal.
      - This function is safe to call multiple times (it resets handlers).
    """

    log_dir = _resolve_log_dir(settings)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "dfox.log"

    level_name = str(getattr(settings, "DFOX_LOG_LEVEL", "INFO") or "INFO").upper().strip()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"

    file_handler = TimedRotatingFileHandler(
        filename=str(log_file),
        when="midnight",
        interval=1,
        backupCount=max(0, int(getattr(settings, "DFOX_LOG_BACKUP_COUNT", 7) or 0)),
        encoding="utf-8",
        utc=False,
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(fmt))

    # Reset root handlers so we don't duplicate logs on repeated starts.
    root = logging.getLogger()
    root.handlers = []
    root.setLevel(level)
    root.addHandler(file_handler)

    logging.getLogger("dfox").info(
        "dfox logging enabled (file=%s, level=%s)",
        os.fspath(log_file),
        level_name,
    )

    return log_file


# ═══════════════════════════════════════════════════════════════════════════════
# DEBUG LOG SINK (F12 overlay)
# ═══════════════════════════════════════════════════════════════════════════════

_debug_logger = logging.getLogger("dfox.debug")


@dataclass(frozen=True)
class DebugEvent:
    kind: str  # "Connect" | "Query" | "Error" | "Info"
    message: str
    at: datetime = field(default_factory=datetime.now)
    duration: float | None = None

    def format(self) -> str:
        stamp = self.at.strftime("%H:%M:%S")
        took = f" [{self.duration * 1000:.0f} ms]" if self.duration is not None else ""
        return f"{stamp} {self.kind:<7} {self.message}{took}"


class DebugLog:
    """Append-only sink for structured Connect/Query/Error events.

    Keeps the last `capacity` events in memory for the overlay and mirrors
    every event to the `dfox.debug` logger. Written from worker threads,
    read from the render loop.
    """

    def __init__(self, capacity: int = 500):
        self._events: deque[DebugEvent] = deque(maxlen=max(1, capacity))
        self._lock = threading.Lock()

    def emit(self, kind: str, message: str, duration: float | None = None) -> DebugEvent:
        event = DebugEvent(kind=kind, message=message, duration=duration)
        with self._lock:
            self._events.append(event)
        level = logging.ERROR if kind == "Error" else logging.INFO
        _debug_logger.log(level, event.format())
        return event

    def connect(self, message: str, duration: float | None = None) -> DebugEvent:
        return self.emit("Connect", message, duration)

    def query(self, message: str, duration: float | None = None) -> DebugEvent:
        return self.emit("Query", message, duration)

    def error(self, message: str, duration: float | None = None) -> DebugEvent:
        return self.emit("Error", message, duration)

    def info(self, message: str) -> DebugEvent:
        return self.emit("Info", message)

    def entries(self) -> list[DebugEvent]:
        with self._lock:
            return list(self._events)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class Stopwatch:
    """Measure elapsed wall time: `with Stopwatch() as sw: ...; sw.elapsed`."""

    def __init__(self) -> None:
        self.started = 0.0
        self.elapsed = 0.0

    def __enter__(self) -> Stopwatch:
        self.started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.elapsed = time.perf_counter() - self.started
        return False
