"""Settings service: load, mutate through the constraint engine, persist.

All settings mutations go through ``set_field`` (user actions) or ``commit``
(already-validated snapshots, e.g. from the availability poller). The store is
updated optimistically before the save is issued and is never rolled back;
the save status indicator is the only signal of a persistence failure.

Saves are serialized per resource and always send the store's latest
snapshot at the moment the save starts, so when two mutations race the
backend ends up holding the last intended state (no partial merges). Nothing
is saved until a load has succeeded, so client defaults never overwrite the
backend.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from core.gateway import BackendError, PersistenceGateway
from domain.settings import Settings, SettingsDecodeError, SettingsField
from gui.app.config_store import ConfigStore
from gui.services.constraint_engine import ApplyResult, ConstraintEngine
from gui.services.event_bus import EventBus, GUIEvent
from gui.services.save_status import SaveStatusIndicator

__all__ = ["SettingsService"]

_log = logging.getLogger(__name__)


class SettingsService:
    def __init__(
        self,
        gateway: PersistenceGateway,
        store: ConfigStore,
        *,
        engine: Optional[ConstraintEngine] = None,
        bus: Optional[EventBus] = None,
        status: Optional[SaveStatusIndicator] = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._engine = engine or ConstraintEngine()
        self._bus = bus
        self.status = status or SaveStatusIndicator("settings", bus)
        self._save_lock = asyncio.Lock()
        self._last_saved: Optional[Settings] = None
        self._loaded = False

    @property
    def current(self) -> Settings:
        return self._store.current

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def engine(self) -> ConstraintEngine:
        return self._engine

    async def load(self) -> Settings:
        try:
            raw = await self._gateway.load_settings()
            loaded = Settings.from_wire(raw)
        except (BackendError, SettingsDecodeError) as e:
            _log.warning("Failed to load settings: %s", e)
            self._publish_error("load_settings", e)
            return self._store.current
        settings = self._store.replace(loaded)
        self._last_saved = loaded
        self._loaded = True
        _log.info("Settings loaded")
        return settings

    async def set_field(self, field: SettingsField, value: Any) -> ApplyResult:
        """Apply a user change; returns the engine result.

        Switching the legacy strategy on first asks the backend for the
        capability. If that check itself fails the change is dropped: nothing
        is saved and the capability gate stays closed.
        """
        field = SettingsField(field)
        available = False
        if field is SettingsField.USE_LEGACY_RECONVERT and value is True:
            try:
                available = await self._gateway.check_capability_available()
            except BackendError as e:
                _log.warning("Capability check failed: %s", e)
                self._publish_error("check_capability", e)
                return ApplyResult(self._store.current)
        result = self._engine.apply(
            self._store.current, field, value, capability_available=available
        )
        if result.capability_required:
            _log.info("Legacy reconversion requested but capability missing")
            if self._bus is not None:
                self._bus.publish(GUIEvent.CAPABILITY_REQUIRED, result.settings)
            return result
        await self.commit(result.settings)
        return result

    async def decline_capability(self) -> None:
        """Gate closed via "use the legacy converter": strategy stays off."""
        result = self._engine.apply(
            self._store.current, SettingsField.USE_LEGACY_RECONVERT, False
        )
        await self.commit(result.settings)

    async def commit(self, settings: Settings) -> None:
        self._store.replace(settings)
        await self._persist()

    async def _persist(self) -> None:
        if not self._loaded:
            _log.error("Refusing to save settings that were never loaded")
            self.status.error("settings not loaded")
            return
        self.status.saving()
        async with self._save_lock:
            snapshot = self._store.current
            if snapshot == self._last_saved:
                self.status.success()
                return
            try:
                await self._gateway.save_settings(snapshot.to_wire())
            except BackendError as e:
                _log.warning("Failed to save settings: %s", e)
                self.status.error(str(e))
                self._publish_error("save_settings", e)
                return
            self._last_saved = snapshot
            self.status.success()
            _log.debug("Settings saved")

    def _publish_error(self, operation: str, exc: BaseException) -> None:
        if self._bus is not None:
            self._bus.publish(
                GUIEvent.ERROR_OCCURRED, {"operation": operation, "message": str(exc)}
            )
