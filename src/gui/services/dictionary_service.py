"""Dictionary service: load, edit, reorder and re-persist the rule list.

The full collection is re-sent after every mutation (no partial or append
persistence). A dictionary that failed to load is never saved: the decode
failure may hide entries the client could not represent, and writing the
in-memory (empty) list back would destroy them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from core.gateway import BackendError, PersistenceGateway
from domain.dictionary import (
    Dictionary,
    DictionaryDecodeError,
    DictionaryEntry,
    decode_dictionary,
    encode_dictionary,
    sorted_by_priority,
)
from gui.services.event_bus import EventBus, GUIEvent
from gui.services.save_status import SaveStatusIndicator

__all__ = ["DictionaryService"]

_log = logging.getLogger(__name__)


class DictionaryService:
    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        bus: Optional[EventBus] = None,
        status: Optional[SaveStatusIndicator] = None,
    ) -> None:
        self._gateway = gateway
        self._bus = bus
        self.status = status or SaveStatusIndicator("dictionary", bus)
        self._dictionary = Dictionary()
        self._loaded = False
        self._save_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def entries(self) -> List[DictionaryEntry]:
        return list(self._dictionary.entries)

    def display_entries(self) -> List[DictionaryEntry]:
        return sorted_by_priority(self._dictionary.entries)

    async def load(self) -> List[DictionaryEntry]:
        try:
            raw = await self._gateway.load_dictionary()
            dictionary = decode_dictionary(raw)
        except DictionaryDecodeError as e:
            _log.error("Rejected malformed dictionary from backend: %s", e)
            self._fail_load(e)
            return self.entries
        except BackendError as e:
            _log.warning("Failed to load dictionary: %s", e)
            self._fail_load(e)
            return self.entries
        self._loaded = True
        self._set(dictionary)
        _log.info("Dictionary loaded with %d entries", len(dictionary.entries))
        return self.entries

    # ------------------------------------------------------------------
    # Mutations (each one persists the whole collection)
    # ------------------------------------------------------------------
    async def add(self, entry: DictionaryEntry) -> None:
        await self._apply(self._dictionary.add(entry))

    async def edit(self, index: int, entry: DictionaryEntry) -> None:
        await self._apply(self._dictionary.replace(index, entry))

    async def delete(self, index: int) -> None:
        await self._apply(self._dictionary.remove(index))

    async def move(self, index: int, direction: str) -> None:
        await self._apply(self._dictionary.move(index, direction))

    async def _apply(self, dictionary: Dictionary) -> None:
        self._set(dictionary)
        await self._persist()

    def _set(self, dictionary: Dictionary) -> None:
        self._dictionary = dictionary
        if self._bus is not None:
            self._bus.publish(GUIEvent.DICTIONARY_CHANGED, self.entries)

    async def _persist(self) -> None:
        if not self._loaded:
            _log.error("Refusing to save dictionary that was never loaded")
            self.status.error("dictionary not loaded")
            return
        self.status.saving()
        async with self._save_lock:
            payload = encode_dictionary(self._dictionary)
            try:
                await self._gateway.save_dictionary(payload)
            except BackendError as e:
                _log.warning("Failed to save dictionary: %s", e)
                self.status.error(str(e))
                self._publish_error("save_dictionary", e)
                return
            self.status.success()
            _log.debug("Dictionary saved (%d entries)", len(payload["entries"]))

    def _fail_load(self, exc: BaseException) -> None:
        self._loaded = False
        self._publish_error("load_dictionary", exc)

    def _publish_error(self, operation: str, exc: BaseException) -> None:
        if self._bus is not None:
            self._bus.publish(
                GUIEvent.ERROR_OCCURRED, {"operation": operation, "message": str(exc)}
            )
