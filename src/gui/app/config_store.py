"""In-memory settings store.

Holds the current ``Settings`` snapshot. Pure data plus validation: no I/O,
no knowledge of the backend. Services replace the snapshot wholesale; every
replacement is published as ``SETTINGS_CHANGED`` so views re-render from the
new value.

A snapshot that violates the exclusive-strategy invariant (both conversion
strategies on, as an old persisted file can contain) is normalised on entry:
advanced conversion wins.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from domain.settings import Settings
from gui.services.event_bus import EventBus, GUIEvent

__all__ = ["ConfigStore", "normalize_settings"]

_log = logging.getLogger(__name__)


def normalize_settings(settings: Settings) -> Settings:
    if settings.exclusive_conflict():
        _log.warning("Both conversion strategies enabled; keeping advanced conversion")
        return replace(settings, use_legacy_reconvert=False)
    return settings


class ConfigStore:
    def __init__(self, bus: Optional[EventBus] = None, initial: Optional[Settings] = None) -> None:
        self._bus = bus
        self._current = normalize_settings(initial or Settings())
        self._loaded = initial is not None

    @property
    def current(self) -> Settings:
        return self._current

    @property
    def loaded(self) -> bool:
        return self._loaded

    def replace(self, settings: Settings) -> Settings:
        if not isinstance(settings, Settings):
            raise TypeError(f"expected Settings, got {type(settings).__name__}")
        settings = normalize_settings(settings)
        self._loaded = True
        if settings == self._current:
            return settings
        self._current = settings
        if self._bus is not None:
            self._bus.publish(GUIEvent.SETTINGS_CHANGED, settings)
        return settings
