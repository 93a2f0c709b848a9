"""Control layer for the clipboard IME settings surface.

Curated, intentionally small surface; services and view models are imported
from their own modules. No implicit QApplication creation.
"""

from __future__ import annotations

from .services.event_bus import (  # noqa: F401
    EventBus,
    GUIEvent,
    Event,
)

__all__ = ["EventBus", "GUIEvent", "Event"]
