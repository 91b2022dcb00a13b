"""
Privacy Cash Client Status Reporting

Periodic single-line spinner for CLI feedback while an operation runs.
"""

from __future__ import annotations
import asyncio
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator, Optional, TextIO, TYPE_CHECKING

from privacy_cash.constants import (
    STATUS_INTERVAL_SEC,
    STATUS_FRAMES,
    ANSI_BLUE,
    ANSI_RESET,
)

if TYPE_CHECKING:
    from privacy_cash.client.orchestrator import OperationOrchestrator

logger = logging.getLogger(__name__)

# Orchestrator of the client call running in the current task, if any
_log_owner: ContextVar[Optional["OperationOrchestrator"]] = ContextVar(
    "privacy_cash_log_owner", default=None
)


@contextmanager
def log_owner(orchestrator: "OperationOrchestrator") -> Iterator[None]:
    """Attribute records logged in this context to one client."""
    token = _log_owner.set(orchestrator)
    try:
        yield
    finally:
        _log_owner.reset(token)


def format_status(frame: str, status: str) -> str:
    return f"{frame}status: {ANSI_BLUE}{status}{ANSI_RESET}\r"


class StatusReporter:
    """
    Renders the orchestrator phase every `interval` seconds while it runs.

    Bound to its owner's lifetime: start() on first use, stop() on close.
    """

    def __init__(
        self,
        orchestrator: "OperationOrchestrator",
        interval: float = STATUS_INTERVAL_SEC,
        stream: Optional[TextIO] = None,
    ):
        self.orchestrator = orchestrator
        self.interval = interval
        self.stream = stream if stream is not None else sys.stdout
        self.frame_index = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the render loop on the running event loop (idempotent)."""
        if self.active:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        """Cancel the render loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def render_once(self) -> bool:
        """Render one frame if an operation is running. Returns True if rendered."""
        if not self.orchestrator.running:
            return False
        frame = STATUS_FRAMES[self.frame_index % len(STATUS_FRAMES)]
        self.frame_index += 1
        self.stream.write(format_status(frame, self.orchestrator.phase))
        self.stream.flush()
        return True

    async def _loop(self) -> None:
        while True:
            self.render_once()
            await asyncio.sleep(self.interval)


class PhaseLogHandler(logging.Handler):
    """
    Non-debug mode handler: INFO messages become the current phase,
    errors are written to the status stream.

    Every client attaches one to the shared package logger, so records
    logged on behalf of another client are ignored.
    """

    def __init__(self, orchestrator: "OperationOrchestrator", stream: Optional[TextIO] = None):
        super().__init__(level=logging.INFO)
        self.orchestrator = orchestrator
        self.stream = stream if stream is not None else sys.stdout

    def emit(self, record: logging.LogRecord) -> None:
        owner = _log_owner.get()
        if owner is not None and owner is not self.orchestrator:
            return
        try:
            message = record.getMessage()
            if record.levelno >= logging.ERROR:
                self.stream.write(f"error message: {message}\n")
            elif record.levelno == logging.INFO and self.orchestrator.running:
                self.orchestrator.phase = message
        except Exception:
            self.handleError(record)


LogCallback = Callable[[str, str], None]


class CallbackLogHandler(logging.Handler):
    """Debug mode handler: routes every record to a caller callback (level, message)."""

    def __init__(self, callback: LogCallback, level: int = logging.DEBUG):
        super().__init__(level=level)
        self.callback = callback

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.callback(record.levelname.lower(), record.getMessage())
        except Exception:
            self.handleError(record)
