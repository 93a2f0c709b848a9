"""Qt signal bridge for the presentation layer.

Widgets connect to Qt signals; the control services publish on the
``EventBus``. ``BusSignalBridge`` subscribes to the bus and re-emits each
event as a typed ``pyqtSignal``. It carries no logic of its own. ``detach()``
drops every bus subscription so a destroyed widget tree never receives
events.
"""

from __future__ import annotations

from typing import List

from PyQt6.QtCore import QObject, pyqtSignal

from gui.services.event_bus import Event, EventBus, GUIEvent, Subscription

__all__ = ["BusSignalBridge"]


class BusSignalBridge(QObject):
    settings_changed = pyqtSignal(object)  # Settings
    dictionary_changed = pyqtSignal(list)  # list[DictionaryEntry]
    save_status_changed = pyqtSignal(str, str)  # (resource, state)
    capability_required = pyqtSignal(object)  # Settings snapshot
    capability_enabled = pyqtSignal(object)
    update_state_changed = pyqtSignal(str, str)  # (state, version or "")
    update_progress = pyqtSignal(float)
    update_notification = pyqtSignal(dict)
    log_record_added = pyqtSignal(dict)
    error_occurred = pyqtSignal(str, str)  # (operation, message)

    def __init__(self, bus: EventBus, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._bus = bus
        self._subs: List[Subscription] = []
        self.attach()

    def attach(self) -> None:
        if self._subs:
            return
        routes = {
            GUIEvent.SETTINGS_CHANGED: lambda e: self.settings_changed.emit(e.payload),
            GUIEvent.DICTIONARY_CHANGED: lambda e: self.dictionary_changed.emit(list(e.payload)),
            GUIEvent.SAVE_STATUS_CHANGED: self._on_save_status,
            GUIEvent.CAPABILITY_REQUIRED: lambda e: self.capability_required.emit(e.payload),
            GUIEvent.CAPABILITY_ENABLED: lambda e: self.capability_enabled.emit(e.payload),
            GUIEvent.UPDATE_STATE_CHANGED: self._on_update_state,
            GUIEvent.UPDATE_PROGRESS: lambda e: self.update_progress.emit(float(e.payload)),
            GUIEvent.UPDATE_NOTIFICATION: lambda e: self.update_notification.emit(dict(e.payload)),
            GUIEvent.LOG_RECORD_ADDED: lambda e: self.log_record_added.emit(dict(e.payload)),
            GUIEvent.ERROR_OCCURRED: self._on_error,
        }
        for name, handler in routes.items():
            self._subs.append(self._bus.subscribe(name, handler))

    def detach(self) -> None:
        for sub in self._subs:
            self._bus.unsubscribe(sub)
        self._subs.clear()

    @property
    def attached(self) -> bool:
        return bool(self._subs)

    def _on_save_status(self, evt: Event) -> None:
        self.save_status_changed.emit(evt.payload["resource"], evt.payload["state"])

    def _on_update_state(self, evt: Event) -> None:
        self.update_state_changed.emit(evt.payload["state"], evt.payload.get("version") or "")

    def _on_error(self, evt: Event) -> None:
        self.error_occurred.emit(evt.payload.get("operation", ""), evt.payload.get("message", ""))
