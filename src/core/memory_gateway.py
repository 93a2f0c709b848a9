"""In-process backend used for headless runs and tests.

Behaviour is scripted through plain attributes:

    gw = InMemoryGateway()
    gw.capability_script = [False, False, True]   # consumed per check, last value sticks
    gw.update = UpdateInfo("1.2.0")
    gw.download_script = [DownloadStarted(1000), DownloadProgress(500), DownloadFinished()]
    gw.fail["save_settings"] = BackendError("disk full")

Every call is recorded in ``calls`` (method name) and persisted payloads are
kept in ``saved_settings`` / ``saved_dictionaries`` in arrival order.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from domain.settings import Settings
from .gateway import (
    DownloadEvent,
    DownloadFinished,
    LogRecordEvent,
    UpdateInfo,
)

__all__ = ["InMemoryGateway"]


class InMemoryGateway:
    def __init__(
        self,
        settings: Dict[str, Any] | None = None,
        dictionary: Dict[str, Any] | None = None,
    ) -> None:
        self.settings: Dict[str, Any] = settings if settings is not None else Settings().to_wire()
        self.dictionary: Dict[str, Any] = dictionary if dictionary is not None else {"entries": []}
        self.capability_script: List[bool] = [False]
        self.update: Optional[UpdateInfo] = None
        self.download_script: List[Any] = [DownloadFinished()]  # events or exceptions
        self.fail: Dict[str, BaseException] = {}
        self.latency: Dict[str, float] = {}
        self.calls: List[str] = []
        self.saved_settings: List[Dict[str, Any]] = []
        self.saved_dictionaries: List[Dict[str, Any]] = []
        self.relaunch_count = 0
        self._log_queue: asyncio.Queue[Optional[LogRecordEvent]] | None = None

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        delay = self.latency.get(name)
        if delay:
            await asyncio.sleep(delay)
        exc = self.fail.get(name)
        if exc is not None:
            raise exc

    def call_count(self, name: str) -> int:
        return self.calls.count(name)

    # ------------------------------------------------------------------
    # PersistenceGateway
    # ------------------------------------------------------------------
    async def load_settings(self) -> Dict[str, Any]:
        await self._enter("load_settings")
        return copy.deepcopy(self.settings)

    async def save_settings(self, data: Dict[str, Any]) -> None:
        await self._enter("save_settings")
        self.settings = copy.deepcopy(data)
        self.saved_settings.append(copy.deepcopy(data))

    async def load_dictionary(self) -> Dict[str, Any]:
        await self._enter("load_dictionary")
        return copy.deepcopy(self.dictionary)

    async def save_dictionary(self, data: Dict[str, Any]) -> None:
        await self._enter("save_dictionary")
        self.dictionary = copy.deepcopy(data)
        self.saved_dictionaries.append(copy.deepcopy(data))

    async def check_capability_available(self) -> bool:
        await self._enter("check_capability_available")
        if len(self.capability_script) > 1:
            return self.capability_script.pop(0)
        return bool(self.capability_script and self.capability_script[0])

    async def check_for_update(self) -> Optional[UpdateInfo]:
        await self._enter("check_for_update")
        return self.update

    async def download_and_install_update(self, on_event: Callable[[DownloadEvent], None]) -> None:
        await self._enter("download_and_install_update")
        for event in self.download_script:
            if isinstance(event, BaseException):
                raise event
            on_event(event)
            await asyncio.sleep(0)

    async def relaunch_application(self) -> None:
        await self._enter("relaunch_application")
        self.relaunch_count += 1

    # ------------------------------------------------------------------
    # Log stream
    # ------------------------------------------------------------------
    def _queue(self) -> "asyncio.Queue[Optional[LogRecordEvent]]":
        if self._log_queue is None:
            self._log_queue = asyncio.Queue()
        return self._log_queue

    def push_log(self, record: LogRecordEvent) -> None:
        self._queue().put_nowait(record)

    def end_log_stream(self) -> None:
        self._queue().put_nowait(None)

    async def log_events(self) -> AsyncIterator[LogRecordEvent]:
        queue = self._queue()
        while True:
            record = await queue.get()
            if record is None:
                return
            yield record

