"""Service layer exports.

Responsibilities:
 - EventBus publish/subscribe core
 - Settings / dictionary synchronization, capability poller, update
   controller (import from their modules)
"""

from .event_bus import EventBus, GUIEvent  # noqa: F401

__all__ = [
    "EventBus",
    "GUIEvent",
]
