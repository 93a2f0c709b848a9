import asyncio

from core.memory_gateway import InMemoryGateway
from domain.settings import Settings, SettingsField
from gui.app.config_store import ConfigStore
from gui.services.availability_poller import AvailabilityPoller
from gui.services.event_bus import GUIEvent
from gui.services.settings_service import SettingsService
from gui.viewmodels.settings_viewmodel import SettingsViewModel


async def _noop_commit(_settings):
    return None


def _vm(bus, initial):
    store = ConfigStore(bus, initial)
    poller = AvailabilityPoller(InMemoryGateway(), _noop_commit, bus=bus)
    return store, SettingsViewModel(store, bus, poller)


def test_fields_follow_exclusive_strategy(bus):
    store, vm = _vm(bus, Settings(use_legacy_reconvert=False, ignore_prefix=False))
    assert vm.is_enabled(SettingsField.SPLIT)
    assert vm.is_enabled(SettingsField.PREFIX)
    store.replace(Settings(use_advanced_conversion=True, use_legacy_reconvert=False))
    states = {f.field: f for f in vm.fields()}
    assert states[SettingsField.SPLIT].enabled is False
    assert states[SettingsField.USE_LEGACY_RECONVERT].enabled is True
    assert states[SettingsField.USE_ADVANCED_CONVERSION].value is True


def test_tracks_settings_save_status_only(bus):
    _, vm = _vm(bus, Settings())
    bus.publish(GUIEvent.SAVE_STATUS_CHANGED, {"resource": "dictionary", "state": "error", "message": "x"})
    assert vm.save_state == "idle"
    bus.publish(GUIEvent.SAVE_STATUS_CHANGED, {"resource": "settings", "state": "saving", "message": None})
    assert vm.save_state == "saving"


def test_dispose_unsubscribes(bus):
    _, vm = _vm(bus, Settings())
    vm.dispose()
    assert bus.subscriber_count(GUIEvent.CAPABILITY_REQUIRED) == 0
    assert bus.subscriber_count(GUIEvent.SAVE_STATUS_CHANGED) == 0


def test_decline_capability_stops_polling_and_keeps_legacy_off(bus):
    gw = InMemoryGateway(settings=Settings(use_legacy_reconvert=False, prefix="x").to_wire())
    gw.capability_script = [False]
    store = ConfigStore(bus)
    svc = SettingsService(gw, store, bus=bus)
    poller = AvailabilityPoller(gw, svc.commit, bus=bus, interval_s=0.01)
    vm = SettingsViewModel(store, bus, poller, service=svc)

    async def scenario():
        await svc.load()
        await svc.set_field(SettingsField.USE_LEGACY_RECONVERT, True)
        assert vm.gate_open and poller.active
        await vm.decline_capability()
        await asyncio.sleep(0.03)

    asyncio.run(scenario())
    assert vm.gate_open is False
    assert not poller.active
    assert store.current.use_legacy_reconvert is False
