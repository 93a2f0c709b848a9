"""Time-limited persistence status indicator.

One indicator per persisted resource ("settings", "dictionary"). The
indicator is the sole user-facing signal of a persistence problem: the
in-memory state always keeps the last user intent.

    idle -> saving -> success --(2 s)--> idle
           saving -> error   --(3 s)--> idle

Reset timers run on the asyncio loop (``loop.call_later``); a new transition
cancels any pending reset so a stale timer never clears a fresher status.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

from config import settings
from gui.services.event_bus import EventBus, GUIEvent

__all__ = ["SaveState", "SaveStatusIndicator"]


class SaveState(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SUCCESS = "success"
    ERROR = "error"


class SaveStatusIndicator:
    def __init__(
        self,
        resource: str,
        bus: Optional[EventBus] = None,
        *,
        success_reset_s: float = settings.SAVE_SUCCESS_RESET_S,
        error_reset_s: float = settings.SAVE_ERROR_RESET_S,
    ) -> None:
        self.resource = resource
        self._bus = bus
        self._success_reset_s = success_reset_s
        self._error_reset_s = error_reset_s
        self._state = SaveState.IDLE
        self._message: Optional[str] = None
        self._reset_handle: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> SaveState:
        return self._state

    @property
    def message(self) -> Optional[str]:
        return self._message

    def saving(self) -> None:
        self._transition(SaveState.SAVING)

    def success(self) -> None:
        self._transition(SaveState.SUCCESS, reset_after=self._success_reset_s)

    def error(self, message: str) -> None:
        self._transition(SaveState.ERROR, message, reset_after=self._error_reset_s)

    def reset(self) -> None:
        self._transition(SaveState.IDLE)

    def dispose(self) -> None:
        self._cancel_reset()

    def _transition(
        self, state: SaveState, message: Optional[str] = None, *, reset_after: float | None = None
    ) -> None:
        self._cancel_reset()
        self._state = state
        self._message = message
        if self._bus is not None:
            self._bus.publish(
                GUIEvent.SAVE_STATUS_CHANGED,
                {"resource": self.resource, "state": state.value, "message": message},
            )
        if reset_after is not None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            self._reset_handle = loop.call_later(reset_after, self._on_reset_timer)

    def _on_reset_timer(self) -> None:
        self._reset_handle = None
        self._transition(SaveState.IDLE)

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None
