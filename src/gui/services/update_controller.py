"""Application update state machine.

States::

    IDLE -> CHECKING -> AVAILABLE | NOT_AVAILABLE | ERROR
    AVAILABLE -> DOWNLOADING -> (relaunch, terminal)
    DOWNLOADING -> ERROR

NOT_AVAILABLE and ERROR are transient: after ``reset_delay_s`` they fall back
to IDLE. Nothing retries automatically; a later explicit ``check_for_updates``
may re-enter CHECKING.

Progress is tracked in bytes. ``Started`` fixes the denominator for the
download (a later change of total is not expected); with an unknown or zero
total the percentage stays at 0 until ``Finished``. The reported value never
decreases and stays within [0, 100].
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

from config import settings
from core.gateway import (
    BackendError,
    DownloadEvent,
    DownloadFinished,
    DownloadProgress,
    DownloadStarted,
    PersistenceGateway,
    UpdateInfo,
)
from gui.services.event_bus import EventBus, GUIEvent

__all__ = ["UpdateState", "DownloadProgressTracker", "UpdateController"]

_log = logging.getLogger(__name__)


class UpdateState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    AVAILABLE = "available"
    NOT_AVAILABLE = "not_available"
    DOWNLOADING = "downloading"
    ERROR = "error"


_TRANSIENT = (UpdateState.NOT_AVAILABLE, UpdateState.ERROR)
_BUSY = (UpdateState.CHECKING, UpdateState.DOWNLOADING)


class DownloadProgressTracker:
    """Byte counter turning download sub-events into a percentage."""

    def __init__(self) -> None:
        self.total_bytes: Optional[int] = None
        self.downloaded_bytes = 0
        self.percent = 0.0
        self.finished = False

    def feed(self, event: DownloadEvent) -> Optional[float]:
        """Consume one event; return the new percentage or None if unchanged.

        ``Started`` only (re)initialises counters and reports nothing.
        """
        if isinstance(event, DownloadStarted):
            self.total_bytes = event.total_bytes or None
            self.downloaded_bytes = 0
            self.percent = 0.0
            return None
        if isinstance(event, DownloadProgress):
            self.downloaded_bytes += event.chunk_bytes
            if self.total_bytes:
                computed = self.downloaded_bytes / self.total_bytes * 100
                self.percent = max(self.percent, min(100.0, computed))
            return self.percent
        if isinstance(event, DownloadFinished):
            self.finished = True
            self.percent = 100.0
            return self.percent
        raise TypeError(f"unknown download event {event!r}")


class UpdateController:
    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        bus: Optional[EventBus] = None,
        reset_delay_s: float = settings.UPDATE_STATUS_RESET_S,
    ) -> None:
        self._gateway = gateway
        self._bus = bus
        self._reset_delay_s = reset_delay_s
        self._state = UpdateState.IDLE
        self._info: Optional[UpdateInfo] = None
        self._error: Optional[str] = None
        self._tracker = DownloadProgressTracker()
        self._reset_handle: Optional[asyncio.TimerHandle] = None
        self._startup_handle: Optional[asyncio.TimerHandle] = None
        self._startup_task: Optional[asyncio.Task[None]] = None
        self._progress_listeners: List[Callable[[float], None]] = []
        self.relaunch_requested = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> UpdateState:
        return self._state

    @property
    def info(self) -> Optional[UpdateInfo]:
        return self._info

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def progress(self) -> float:
        return self._tracker.percent

    def add_progress_listener(self, listener: Callable[[float], None]) -> Callable[[], None]:
        self._progress_listeners.append(listener)

        def _remove() -> None:
            if listener in self._progress_listeners:
                self._progress_listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Check
    # ------------------------------------------------------------------
    async def check_for_updates(self) -> Optional[UpdateInfo]:
        if self._state in _BUSY:
            _log.debug("Update check ignored while %s", self._state.value)
            return None
        self._set_state(UpdateState.CHECKING)
        try:
            info = await self._gateway.check_for_update()
        except BackendError as e:
            self._fail(f"update check failed: {e}")
            return None
        if info is None:
            self._info = None
            self._set_state(UpdateState.NOT_AVAILABLE)
            return None
        self._info = info
        _log.info("Update %s available", info.version)
        self._set_state(UpdateState.AVAILABLE)
        return info

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------
    async def install_update(self) -> bool:
        """Download and install, then relaunch. Returns False on failure."""
        if self._state in _BUSY:
            _log.debug("Install ignored while %s", self._state.value)
            return False
        # busy before the first await so a second request is ignored
        self._set_state(UpdateState.CHECKING)
        try:
            info = await self._gateway.check_for_update()
        except BackendError as e:
            self._fail(f"update check before install failed: {e}")
            return False
        if info is None:
            self._fail("no update available to install")
            return False
        self._info = info
        self._tracker = DownloadProgressTracker()
        self._set_state(UpdateState.DOWNLOADING)
        try:
            await self._gateway.download_and_install_update(self._on_download_event)
        except BackendError as e:
            self._fail(f"update download failed: {e}")
            return False
        if not self._tracker.finished:
            self._fail("update download ended before completion")
            return False
        await self._relaunch()
        return True

    def _on_download_event(self, event: DownloadEvent) -> None:
        if self._state is not UpdateState.DOWNLOADING:
            return
        percent = self._tracker.feed(event)
        if percent is None:
            return
        for listener in list(self._progress_listeners):
            listener(percent)
        if self._bus is not None:
            self._bus.publish(GUIEvent.UPDATE_PROGRESS, percent)

    async def _relaunch(self) -> None:
        self.relaunch_requested += 1
        _log.info("Update installed; relaunching")
        try:
            await self._gateway.relaunch_application()
        except BackendError as e:
            # no recovery path: the installed update needs a restart
            _log.critical("Relaunch after update failed: %s", e)
            self._error = str(e)
            self._cancel_reset()
            self._state = UpdateState.ERROR
            if self._bus is not None:
                self._bus.publish(
                    GUIEvent.UPDATE_STATE_CHANGED,
                    {"state": UpdateState.ERROR.value, "version": self._info.version if self._info else None},
                )
                self._bus.publish(GUIEvent.UPDATE_FATAL, {"message": str(e)})

    # ------------------------------------------------------------------
    # Startup check
    # ------------------------------------------------------------------
    def schedule_startup_check(self, delay_s: float = settings.STARTUP_UPDATE_DELAY_S) -> None:
        """Check once after ``delay_s``; only ever notifies, never installs."""
        loop = asyncio.get_running_loop()
        self.cancel_startup_check()
        self._startup_handle = loop.call_later(delay_s, self._start_startup_check)

    def cancel_startup_check(self) -> None:
        if self._startup_handle is not None:
            self._startup_handle.cancel()
            self._startup_handle = None
        if self._startup_task is not None and not self._startup_task.done():
            self._startup_task.cancel()
        self._startup_task = None

    async def wait_startup_check(self) -> None:
        if self._startup_task is not None:
            await asyncio.wait({self._startup_task})

    def _start_startup_check(self) -> None:
        self._startup_handle = None
        self._startup_task = asyncio.get_running_loop().create_task(self._startup_check())

    async def _startup_check(self) -> None:
        info = await self.check_for_updates()
        if info is not None and self._bus is not None:
            self._bus.publish(
                GUIEvent.UPDATE_NOTIFICATION,
                {"version": info.version, "date": info.date, "body": info.body},
            )

    def dispose(self) -> None:
        self.cancel_startup_check()
        self._cancel_reset()
        self._progress_listeners.clear()

    # ------------------------------------------------------------------
    # State handling
    # ------------------------------------------------------------------
    def _fail(self, message: str) -> None:
        _log.error(message)
        self._error = message
        self._set_state(UpdateState.ERROR)

    def _set_state(self, state: UpdateState) -> None:
        self._cancel_reset()
        self._state = state
        if state is not UpdateState.ERROR:
            self._error = None
        _log.debug("Update state -> %s", state.value)
        if self._bus is not None:
            self._bus.publish(
                GUIEvent.UPDATE_STATE_CHANGED,
                {"state": state.value, "version": self._info.version if self._info else None},
            )
        if state in _TRANSIENT:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            self._reset_handle = loop.call_later(self._reset_delay_s, self._reset_to_idle)

    def _reset_to_idle(self) -> None:
        self._reset_handle = None
        if self._state in _TRANSIENT:
            self._set_state(UpdateState.IDLE)

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None
