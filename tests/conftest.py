# Shared fixtures. Qt runs on the offscreen platform so the signal bridge
# tests work without a display; they skip when PyQt6 is not installed.

import os

import pytest

from core.memory_gateway import InMemoryGateway
from gui.services.event_bus import EventBus


@pytest.fixture(autouse=True, scope="session")
def _set_offscreen():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    return True


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    """``recorder(GUIEvent.X)`` returns a list that collects X payloads."""

    def _record(name):
        received = []
        bus.subscribe(name, lambda evt: received.append(evt.payload))
        return received

    return _record


@pytest.fixture
def qt_app():
    QtCore = pytest.importorskip("PyQt6.QtCore")
    return QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])
