"""Logging service.

Collects log lines into a capacity-bound ring buffer for the debug view:

 - backend records arriving on the gateway's log stream (pumped by an asyncio
   task started with ``start_stream`` and cancelled by ``stop_stream``)
 - optionally the client's own ``logging`` records (``attach_root``)

Consumption is append-only and in arrival order; every new entry is published
as ``GUIEvent.LOG_RECORD_ADDED``. After ``stop_stream`` returns no further
backend record is ingested.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Deque, List, Optional

from config import settings
from core.gateway import BackendError, LogRecordEvent, PersistenceGateway
from gui.services.event_bus import EventBus, GUIEvent

__all__ = [
    "LogEntry",
    "LoggingService",
]

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    level: str
    message: str
    module_path: str
    timestamp: str
    source: str  # "backend" or "client"

    def as_dict(self) -> dict:
        return {
            "level": self.level,
            "message": self.message,
            "module_path": self.module_path,
            "timestamp": self.timestamp,
            "source": self.source,
        }


class _RingBufferHandler(logging.Handler):
    def __init__(self, svc: "LoggingService") -> None:
        super().__init__()
        self._svc = svc

    def emit(self, record: logging.LogRecord) -> None:
        self._svc._append(
            LogEntry(
                level=record.levelname,
                message=record.getMessage(),
                module_path=record.name,
                timestamp=datetime.fromtimestamp(record.created).isoformat(timespec="seconds"),
                source="client",
            )
        )


class LoggingService:
    def __init__(self, capacity: int = settings.LOG_BUFFER_CAPACITY, bus: Optional[EventBus] = None) -> None:
        self._lock = RLock()
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._bus = bus
        self._handler = _RingBufferHandler(self)
        self._handler.setLevel(logging.DEBUG)
        self._attached = False
        self._stream_task: Optional[asyncio.Task[None]] = None

    # Local logging ----------------------------------------------------
    def attach_root(self, level: int = logging.INFO) -> None:
        if self._attached:
            return
        self._handler.setLevel(level)
        root = logging.getLogger()
        root.addHandler(self._handler)
        # keep an already lower root level
        if root.level > level:
            root.setLevel(level)
        self._attached = True

    def detach_root(self) -> None:
        if not self._attached:
            return
        logging.getLogger().removeHandler(self._handler)
        self._attached = False

    # Backend stream ---------------------------------------------------
    def start_stream(self, gateway: PersistenceGateway) -> None:
        if self.streaming:
            return
        loop = asyncio.get_running_loop()
        self._stream_task = loop.create_task(self._pump(gateway))

    async def stop_stream(self) -> None:
        task, self._stream_task = self._stream_task, None
        if task is None:
            return
        task.cancel()
        await asyncio.wait({task})

    @property
    def streaming(self) -> bool:
        return self._stream_task is not None and not self._stream_task.done()

    async def _pump(self, gateway: PersistenceGateway) -> None:
        me = asyncio.current_task()
        try:
            async for record in gateway.log_events():
                if self._stream_task is not me:
                    return
                self.ingest(record)
        except BackendError as e:
            _log.warning("Backend log stream ended: %s", e)

    def ingest(self, record: LogRecordEvent) -> LogEntry:
        entry = LogEntry(
            level=record.level,
            message=record.message,
            module_path=record.module_path,
            timestamp=record.timestamp,
            source="backend",
        )
        self._append(entry)
        return entry

    def _append(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)
        if self._bus is not None:
            self._bus.publish(GUIEvent.LOG_RECORD_ADDED, entry.as_dict())

    # Query ------------------------------------------------------------
    def recent(self, limit: Optional[int] = None) -> List[LogEntry]:
        with self._lock:
            data = list(self._entries)
        return data[-limit:] if limit is not None else data

    def filter(
        self, *, level: str | None = None, module_contains: str | None = None
    ) -> List[LogEntry]:
        out: List[LogEntry] = []
        for e in self.recent():
            if level and e.level != level.upper():
                continue
            if module_contains and module_contains not in e.module_path:
                continue
            out.append(e)
        return out

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
