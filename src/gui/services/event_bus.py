"""EventBus core.

Synchronous publish/subscribe channel between the control services and the
presentation layer (and the backend push streams once pumped in).

Goals:
 - Decouple producers (services, backend event pump) from consumers (views)
 - Deliver events in publish order, one publish fully dispatched before the next
 - Error isolation: one failing handler doesn't break the publish cycle
 - Explicit unsubscribe handles so teardown stops delivery immediately
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from threading import RLock
from time import perf_counter
from typing import Any, Dict, List, Protocol

__all__ = [
    "GUIEvent",
    "Event",
    "EventBus",
    "EventHandler",
    "Subscription",
]


class GUIEvent(str, Enum):
    STARTUP_COMPLETE = "startup_complete"
    SETTINGS_CHANGED = "settings_changed"
    DICTIONARY_CHANGED = "dictionary_changed"
    SAVE_STATUS_CHANGED = "save_status_changed"
    CAPABILITY_REQUIRED = "capability_required"
    CAPABILITY_ENABLED = "capability_enabled"
    UPDATE_STATE_CHANGED = "update_state_changed"
    UPDATE_PROGRESS = "update_progress"
    UPDATE_NOTIFICATION = "update_notification"
    UPDATE_FATAL = "update_fatal"
    LOG_RECORD_ADDED = "log_record_added"
    ERROR_OCCURRED = "error_occurred"
    UNCAUGHT_EXCEPTION = "uncaught_exception"


@dataclass
class Event:
    name: str
    payload: Any
    timestamp: float


class EventHandler(Protocol):
    def __call__(self, event: Event) -> None: ...  # pragma: no cover - structural


@dataclass
class Subscription:
    event: str
    handler: EventHandler
    once: bool
    active: bool = True

    def cancel(self) -> None:
        self.active = False


class EventBus:
    """Synchronous event dispatcher.

    Handlers run while the lock is NOT held (subscriber list is copied first)
    so a handler may subscribe or unsubscribe without deadlock. A subscription
    cancelled during a publish is skipped for the remainder of that publish.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._subs: Dict[str, List[Subscription]] = {}
        self._errors: List[tuple[Event, BaseException]] = []

    @staticmethod
    def _key(name: str | GUIEvent) -> str:
        return name.value if isinstance(name, GUIEvent) else name

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------
    def subscribe(
        self, name: str | GUIEvent, handler: EventHandler, *, once: bool = False
    ) -> Subscription:
        sub = Subscription(event=self._key(name), handler=handler, once=once)
        with self._lock:
            self._subs.setdefault(sub.event, []).append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.active = False
        with self._lock:
            bucket = self._subs.get(sub.event)
            if not bucket:
                return
            bucket[:] = [s for s in bucket if s is not sub]
            if not bucket:
                self._subs.pop(sub.event, None)

    def clear(self) -> None:
        with self._lock:
            for bucket in self._subs.values():
                for sub in bucket:
                    sub.active = False
            self._subs.clear()
            self._errors.clear()

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------
    def publish(self, name: str | GUIEvent, payload: Any = None) -> Event:
        evt = Event(name=self._key(name), payload=payload, timestamp=perf_counter())
        with self._lock:
            subs = list(self._subs.get(evt.name, ()))
        for sub in subs:
            if not sub.active:
                continue
            if sub.once:
                self.unsubscribe(sub)
            try:
                sub.handler(evt)
            except Exception as exc:  # noqa: BLE001 - isolate handler failures
                with self._lock:
                    self._errors.append((evt, exc))
        return evt

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def subscriber_count(self, name: str | GUIEvent) -> int:
        with self._lock:
            return len(self._subs.get(self._key(name), ()))

    @property
    def errors(self) -> list[tuple[Event, BaseException]]:
        with self._lock:
            return list(self._errors)
