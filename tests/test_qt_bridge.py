import pytest

pytest.importorskip("PyQt6")

from domain.settings import Settings  # noqa: E402
from gui.services.event_bus import GUIEvent  # noqa: E402
from gui.services.qt_bridge import BusSignalBridge  # noqa: E402


def test_bus_events_reemitted_as_signals(qt_app, bus):
    bridge = BusSignalBridge(bus)
    settings_seen, progress_seen, status_seen = [], [], []
    bridge.settings_changed.connect(settings_seen.append)
    bridge.update_progress.connect(progress_seen.append)
    bridge.save_status_changed.connect(lambda resource, state: status_seen.append((resource, state)))

    s = Settings(prefix="!")
    bus.publish(GUIEvent.SETTINGS_CHANGED, s)
    bus.publish(GUIEvent.UPDATE_PROGRESS, 50)
    bus.publish(GUIEvent.SAVE_STATUS_CHANGED, {"resource": "dictionary", "state": "error", "message": "x"})

    assert settings_seen == [s]
    assert progress_seen == [50.0]
    assert status_seen == [("dictionary", "error")]


def test_update_state_without_version(qt_app, bus):
    bridge = BusSignalBridge(bus)
    seen = []
    bridge.update_state_changed.connect(lambda state, version: seen.append((state, version)))
    bus.publish(GUIEvent.UPDATE_STATE_CHANGED, {"state": "checking", "version": None})
    assert seen == [("checking", "")]


def test_detach_stops_delivery(qt_app, bus):
    bridge = BusSignalBridge(bus)
    seen = []
    bridge.error_occurred.connect(lambda op, msg: seen.append(op))
    bridge.detach()
    assert not bridge.attached
    bus.publish(GUIEvent.ERROR_OCCURRED, {"operation": "save_settings", "message": "x"})
    assert seen == []
    assert bus.subscriber_count(GUIEvent.ERROR_OCCURRED) == 0
