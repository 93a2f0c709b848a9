"""Global error handling service.

Backend failures are handled where they happen (services turn them into
local state). This service is the last line for everything else: uncaught
exceptions on the main thread (``sys.excepthook``), worker threads
(``threading.excepthook``) and the asyncio loop (loop exception handler,
which also sees exceptions from tasks nobody awaited).

Captured errors go to a bounded ring buffer with dedup counting, the
``logging`` module and the bus (``GUIEvent.UNCAUGHT_EXCEPTION``).
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
import traceback
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

from gui.services.event_bus import EventBus, GUIEvent

__all__ = ["ErrorRecord", "ErrorHandlingService"]

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorRecord:
    exc_type: type
    exc_value: BaseException
    traceback_str: str
    iso_time: str
    origin: str  # "main", thread name, or "asyncio"

    def summary(self, max_len: int = 120) -> str:
        msg = f"{self.exc_type.__name__}: {self.exc_value}"
        return msg if len(msg) <= max_len else msg[: max_len - 3] + "..."


class ErrorHandlingService:
    """Installable exception hooks.

    Usage
    -----
    svc = ErrorHandlingService(bus=bus)
    svc.install()                # sys + threading hooks
    svc.install_loop(loop)       # asyncio exception handler
    ...
    svc.uninstall()
    """

    def __init__(self, *, capacity: int = 20, bus: Optional[EventBus] = None) -> None:
        self._errors: Deque[ErrorRecord] = deque(maxlen=max(1, capacity))
        self._counts: Dict[str, int] = {}
        self._bus = bus
        self._installed = False
        self._prev_sys_hook: Any = None
        self._prev_threading_hook: Any = None
        self._loops: List[tuple[asyncio.AbstractEventLoop, Any]] = []

    # ------------------------------------------------------------------
    # Installation / removal
    # ------------------------------------------------------------------
    def install(self) -> None:
        if self._installed:
            return
        self._prev_sys_hook = sys.excepthook
        sys.excepthook = self._sys_hook
        self._prev_threading_hook = threading.excepthook
        threading.excepthook = self._thread_hook
        self._installed = True

    def install_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loops.append((loop, loop.get_exception_handler()))
        loop.set_exception_handler(self._loop_handler)

    def uninstall(self) -> None:
        for loop, previous in self._loops:
            if not loop.is_closed():
                loop.set_exception_handler(previous)
        self._loops.clear()
        if not self._installed:
            return
        sys.excepthook = self._prev_sys_hook
        threading.excepthook = self._prev_threading_hook
        self._installed = False

    @property
    def installed(self) -> bool:
        return self._installed

    # ------------------------------------------------------------------
    # Hook adapters
    # ------------------------------------------------------------------
    def _sys_hook(self, exc_type, exc_value, tb):  # pragma: no cover - delegate
        self.handle_exception(exc_type, exc_value, tb)
        if self._prev_sys_hook is not None:
            self._prev_sys_hook(exc_type, exc_value, tb)

    def _thread_hook(self, args):  # pragma: no cover - delegate
        origin = args.thread.name if args.thread is not None else "thread"
        self.handle_exception(args.exc_type, args.exc_value, args.exc_traceback, origin=origin)

    def _loop_handler(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        exc = context.get("exception")
        if exc is None:
            _log.error("asyncio: %s", context.get("message", "unknown error"))
            return
        self.handle_exception(type(exc), exc, exc.__traceback__, origin="asyncio")

    # ------------------------------------------------------------------
    # Core logic
    # ------------------------------------------------------------------
    def handle_exception(self, exc_type, exc_value, tb, *, origin: str = "main") -> ErrorRecord:
        """Record one uncaught exception (public for tests and callers)."""
        trace_text = "".join(traceback.format_exception(exc_type, exc_value, tb))
        record = ErrorRecord(
            exc_type=exc_type,
            exc_value=exc_value,
            traceback_str=trace_text,
            iso_time=datetime.now(timezone.utc).isoformat(),
            origin=origin,
        )
        self._errors.append(record)
        key = f"{exc_type.__name__}|{hash(trace_text)}"
        self._counts[key] = self._counts.get(key, 0) + 1
        _log.error("Uncaught exception (%s) %s", origin, record.summary())
        if self._bus is not None:
            self._bus.publish(
                GUIEvent.UNCAUGHT_EXCEPTION,
                {
                    "type": exc_type.__name__,
                    "message": str(exc_value),
                    "origin": origin,
                    "iso_time": record.iso_time,
                    "occurrences": self._counts[key],
                },
            )
        return record

    def recent_errors(self) -> List[ErrorRecord]:
        return list(self._errors)

    def occurrence_count(self, record: ErrorRecord) -> int:
        return self._counts.get(f"{record.exc_type.__name__}|{hash(record.traceback_str)}", 0)

    def clear(self) -> None:
        self._errors.clear()
        self._counts.clear()
