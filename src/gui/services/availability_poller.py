"""Capability availability poller.

Active while the capability gate is open (the legacy strategy was requested
but the backend reported the capability missing). It asks the backend once
immediately and then once per interval until the capability shows up, then
switches the legacy strategy on through the constraint engine, persists,
publishes ``CAPABILITY_ENABLED`` and stops. With a ``current`` getter the
change is applied to the latest settings rather than the activation snapshot.

Late results: every activation gets a generation number. A check result is
applied only if its generation is still current when the await returns, and
deactivation both bumps the generation and cancels the task, so a check that
was in flight while the gate closed can never flip the flag.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from config import settings as app_settings
from core.gateway import BackendError, PersistenceGateway
from domain.settings import Settings, SettingsField
from gui.services.constraint_engine import ConstraintEngine
from gui.services.event_bus import EventBus, GUIEvent

__all__ = ["AvailabilityPoller"]

_log = logging.getLogger(__name__)

CommitFn = Callable[[Settings], Awaitable[None]]
CurrentFn = Callable[[], Settings]


class AvailabilityPoller:
    def __init__(
        self,
        gateway: PersistenceGateway,
        commit: CommitFn,
        *,
        engine: Optional[ConstraintEngine] = None,
        bus: Optional[EventBus] = None,
        interval_s: float = app_settings.POLL_INTERVAL_S,
        current: Optional[CurrentFn] = None,
    ) -> None:
        self._gateway = gateway
        self._commit = commit
        self._current = current
        self._engine = engine or ConstraintEngine()
        self._bus = bus
        self._interval_s = interval_s
        self._generation = 0
        self._task: Optional[asyncio.Task[None]] = None
        self._committing = False
        self.checks = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def update(self, should_poll: bool, snapshot: Optional[Settings] = None) -> None:
        """Drive the poller from the gate's open/closed state."""
        if should_poll:
            if snapshot is None:
                raise ValueError("a settings snapshot is required to start polling")
            self.activate(snapshot)
        else:
            self.deactivate()

    def activate(self, snapshot: Settings) -> None:
        self.deactivate()
        self._generation += 1
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(self._generation, snapshot))
        self._task.add_done_callback(self._on_task_done)
        _log.info("Capability polling started (interval %.2fs)", self._interval_s)

    def deactivate(self) -> None:
        """Stop unconditionally; an in-flight check's result is discarded."""
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done() and not self._committing:
            task.cancel()
            _log.info("Capability polling stopped")

    async def wait(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def _run(self, generation: int, snapshot: Settings) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            available = await self._check()
            if generation != self._generation:
                return
            if available:
                await self._enable(snapshot)
                return
            next_tick += self._interval_s
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    async def _check(self) -> bool:
        self.checks += 1
        try:
            return await self._gateway.check_capability_available()
        except BackendError as e:
            _log.warning("Capability check failed, retrying: %s", e)
            return False

    async def _enable(self, snapshot: Settings) -> None:
        self._committing = True
        try:
            # latest settings, so edits made while polling are kept
            base = self._current() if self._current is not None else snapshot
            result = self._engine.apply(
                base, SettingsField.USE_LEGACY_RECONVERT, True, capability_available=True
            )
            await self._commit(result.settings)
            _log.info("Capability available; legacy reconversion enabled")
            # subscribers may deactivate from here; the task must not be cancelled
            if self._bus is not None:
                self._bus.publish(GUIEvent.CAPABILITY_ENABLED, result.settings)
        finally:
            self._committing = False

    @staticmethod
    def _on_task_done(task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _log.error("Capability poller crashed", exc_info=exc)
