from domain.settings import Settings
from gui.app.config_store import ConfigStore, normalize_settings
from gui.services.event_bus import GUIEvent

import pytest


def test_starts_with_defaults_not_loaded():
    store = ConfigStore()
    assert store.current == Settings()
    assert store.loaded is False


def test_replace_publishes_changes(bus, recorder):
    changes = recorder(GUIEvent.SETTINGS_CHANGED)
    store = ConfigStore(bus)
    new = Settings(prefix="!")
    store.replace(new)
    store.replace(new)  # unchanged value: no second event
    assert changes == [new]
    assert store.loaded is True


def test_replace_rejects_non_settings():
    with pytest.raises(TypeError):
        ConfigStore().replace({"prefix": "!"})


def test_conflicting_snapshot_keeps_advanced():
    both = Settings(use_legacy_reconvert=True, use_advanced_conversion=True)
    fixed = normalize_settings(both)
    assert fixed.use_advanced_conversion is True
    assert fixed.use_legacy_reconvert is False
    assert ConfigStore(initial=both).current == fixed


def test_consistent_snapshot_returned_as_is():
    s = Settings()
    assert normalize_settings(s) is s
