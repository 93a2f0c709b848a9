"""ViewModel for the settings screen.

Turns the settings snapshot into display state (which inputs are enabled,
current save status) and owns the capability gate: the gate opens when the
settings service reports ``CAPABILITY_REQUIRED`` and drives the availability
poller until the capability shows up or the user closes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from domain.settings import Settings, SettingsField
from gui.app.config_store import ConfigStore
from gui.services.availability_poller import AvailabilityPoller
from gui.services.constraint_engine import ConstraintEngine
from gui.services.event_bus import Event, EventBus, GUIEvent, Subscription

if TYPE_CHECKING:  # pragma: no cover
    from gui.services.settings_service import SettingsService

__all__ = ["FieldState", "SettingsViewModel"]


@dataclass(frozen=True)
class FieldState:
    field: SettingsField
    value: object
    enabled: bool


class SettingsViewModel:
    def __init__(
        self,
        store: ConfigStore,
        bus: EventBus,
        poller: AvailabilityPoller,
        engine: Optional[ConstraintEngine] = None,
        service: Optional["SettingsService"] = None,
    ) -> None:
        self._store = store
        self._bus = bus
        self._poller = poller
        self._engine = engine or ConstraintEngine()
        self._service = service
        self.gate_open = False
        self.save_state = "idle"
        self._subs: List[Subscription] = [
            bus.subscribe(GUIEvent.CAPABILITY_REQUIRED, self._on_capability_required),
            bus.subscribe(GUIEvent.CAPABILITY_ENABLED, self._on_capability_enabled),
            bus.subscribe(GUIEvent.SAVE_STATUS_CHANGED, self._on_save_status),
        ]

    @property
    def settings(self) -> Settings:
        return self._store.current

    def fields(self) -> List[FieldState]:
        current = self._store.current
        disabled = self._engine.disabled_fields(current)
        return [FieldState(f, current.get(f), f not in disabled) for f in SettingsField]

    def is_enabled(self, field: SettingsField) -> bool:
        return field not in self._engine.disabled_fields(self._store.current)

    # Capability gate --------------------------------------------------
    def close_gate(self) -> None:
        self.gate_open = False
        self._poller.update(False)

    async def decline_capability(self) -> None:
        """User chose the legacy converter path instead: stop and keep it off."""
        self.close_gate()
        if self._service is not None:
            await self._service.decline_capability()

    def _on_capability_required(self, evt: Event) -> None:
        self.gate_open = True
        self._poller.update(True, evt.payload)

    def _on_capability_enabled(self, _evt: Event) -> None:
        self.close_gate()

    def _on_save_status(self, evt: Event) -> None:
        if evt.payload.get("resource") == "settings":
            self.save_state = evt.payload["state"]

    def dispose(self) -> None:
        for sub in self._subs:
            self._bus.unsubscribe(sub)
        self._subs.clear()
        self._poller.deactivate()
