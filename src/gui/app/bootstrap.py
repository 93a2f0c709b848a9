"""Application bootstrap for the settings control layer.

Responsibilities:
 - Build the backend gateway (HTTP by default, injectable for tests)
 - Wire bus, config store, constraint engine, services, poller and the
   update controller into one ``AppContext``
 - Optional Qt bootstrap (QApplication + signal bridge) unless headless
 - ``start()`` loads state, opens the backend log stream and schedules the
   startup update check; ``shutdown()`` tears everything down in reverse

PyQt6 is imported lazily so headless runs and tests do not need a display.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Optional

from config import settings as app_settings
from core.gateway import PersistenceGateway
from gui.app.config_store import ConfigStore
from gui.services.availability_poller import AvailabilityPoller
from gui.services.constraint_engine import ConstraintEngine
from gui.services.dictionary_service import DictionaryService
from gui.services.error_handling_service import ErrorHandlingService
from gui.services.event_bus import EventBus, GUIEvent
from gui.services.logging_service import LoggingService
from gui.services.settings_service import SettingsService
from gui.services.update_controller import UpdateController
from gui.viewmodels.settings_viewmodel import SettingsViewModel

try:  # Lazy / optional Qt import
    from PyQt6.QtWidgets import QApplication  # type: ignore

    _QT_AVAILABLE = True
except ImportError:  # pragma: no cover - depends on environment
    QApplication = None  # type: ignore
    _QT_AVAILABLE = False

__all__ = ["AppContext", "create_app"]

_log = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Container with references created during bootstrap."""

    gateway: PersistenceGateway
    bus: EventBus
    store: ConfigStore
    engine: ConstraintEngine
    settings: SettingsService
    dictionary: DictionaryService
    poller: AvailabilityPoller
    updates: UpdateController
    logs: LoggingService
    errors: ErrorHandlingService
    settings_vm: SettingsViewModel
    headless: bool
    qt_app: Optional[Any] = None
    bridge: Optional[Any] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    async def start(self, *, startup_update_delay_s: float | None = None) -> None:
        self.errors.install_loop(asyncio.get_running_loop())
        await self.settings.load()
        await self.dictionary.load()
        self.logs.start_stream(self.gateway)
        delay = (
            startup_update_delay_s
            if startup_update_delay_s is not None
            else app_settings.STARTUP_UPDATE_DELAY_S
        )
        self.updates.schedule_startup_check(delay)
        self.bus.publish(GUIEvent.STARTUP_COMPLETE)
        _log.info("Control layer started")

    async def shutdown(self) -> None:
        self.updates.dispose()
        self.settings_vm.dispose()
        self.poller.deactivate()
        await self.logs.stop_stream()
        self.logs.detach_root()
        self.settings.status.dispose()
        self.dictionary.status.dispose()
        if self.bridge is not None:
            self.bridge.detach()
        self.errors.uninstall()
        aclose = getattr(self.gateway, "aclose", None)
        if aclose is not None:
            await aclose()
        _log.info("Control layer stopped")


def create_app(
    *,
    gateway: Optional[PersistenceGateway] = None,
    headless: bool | None = None,
    poll_interval_s: float = app_settings.POLL_INTERVAL_S,
    update_reset_delay_s: float = app_settings.UPDATE_STATUS_RESET_S,
    install_hooks: bool = True,
) -> AppContext:
    """Create and wire the control layer.

    Parameters
    ----------
    gateway: Backend implementation; defaults to ``HttpBackendGateway``.
    headless: Skip QApplication / signal bridge. If None, inferred from Qt availability.
    """
    if headless is None:
        headless = not _QT_AVAILABLE
    if gateway is None:
        from core.http_gateway import HttpBackendGateway  # local import keeps tests light

        gateway = HttpBackendGateway()

    bus = EventBus()
    store = ConfigStore(bus)
    engine = ConstraintEngine()
    settings_service = SettingsService(gateway, store, engine=engine, bus=bus)
    poller = AvailabilityPoller(
        gateway,
        settings_service.commit,
        engine=engine,
        bus=bus,
        interval_s=poll_interval_s,
        current=lambda: store.current,
    )
    errors = ErrorHandlingService(bus=bus)
    if install_hooks:
        errors.install()
    logs = LoggingService(bus=bus)
    logs.attach_root()

    ctx = AppContext(
        gateway=gateway,
        bus=bus,
        store=store,
        engine=engine,
        settings=settings_service,
        dictionary=DictionaryService(gateway, bus=bus),
        poller=poller,
        updates=UpdateController(gateway, bus=bus, reset_delay_s=update_reset_delay_s),
        logs=logs,
        errors=errors,
        settings_vm=SettingsViewModel(store, bus, poller, engine, settings_service),
        headless=headless,
    )

    if not headless and _QT_AVAILABLE:
        from gui.services.qt_bridge import BusSignalBridge

        ctx.qt_app = QApplication.instance() or QApplication(sys.argv[:1])
        ctx.bridge = BusSignalBridge(bus)
    return ctx
