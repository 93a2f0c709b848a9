import asyncio

from core.gateway import LogRecordEvent, UpdateInfo
from core.memory_gateway import InMemoryGateway
from domain.settings import Settings
from gui.app.bootstrap import create_app
from gui.services.event_bus import GUIEvent


def _wired(gw):
    return create_app(gateway=gw, headless=True, install_hooks=False, poll_interval_s=0.01)


def test_create_app_headless_wires_services():
    ctx = _wired(InMemoryGateway())
    try:
        assert ctx.headless is True
        assert ctx.bridge is None
        assert ctx.settings.current == Settings()
        assert ctx.settings_vm.settings is ctx.store.current
    finally:
        ctx.logs.detach_root()


def test_start_loads_state_and_shutdown_tears_down():
    gw = InMemoryGateway(
        settings=Settings(prefix="!", use_legacy_reconvert=False).to_wire(),
        dictionary={"entries": [{"input": "a", "method": "Replace", "output": "b", "use_regex": False, "priority": 1}]},
    )
    gw.update = UpdateInfo("9.0.0")
    ctx = _wired(gw)
    startup, notes = [], []
    ctx.bus.subscribe(GUIEvent.STARTUP_COMPLETE, lambda evt: startup.append(True))
    ctx.bus.subscribe(GUIEvent.UPDATE_NOTIFICATION, lambda evt: notes.append(evt.payload["version"]))

    async def scenario():
        await ctx.start(startup_update_delay_s=0.01)
        gw.push_log(LogRecordEvent("INFO", "hello", "backend", "t0"))
        await asyncio.sleep(0.05)
        await ctx.updates.wait_startup_check()
        await ctx.shutdown()

    asyncio.run(scenario())
    assert startup == [True]
    assert ctx.store.current.prefix == "!"
    assert ctx.dictionary.loaded and len(ctx.dictionary.entries) == 1
    assert notes == ["9.0.0"]
    assert any(e.message == "hello" for e in ctx.logs.filter(module_contains="backend"))
    assert not ctx.logs.streaming
