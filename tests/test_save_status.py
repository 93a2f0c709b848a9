import asyncio

from gui.services.event_bus import GUIEvent
from gui.services.save_status import SaveState, SaveStatusIndicator


def test_success_resets_to_idle(bus, recorder):
    states = recorder(GUIEvent.SAVE_STATUS_CHANGED)
    status = SaveStatusIndicator("settings", bus, success_reset_s=0.01, error_reset_s=0.01)

    async def scenario():
        status.saving()
        status.success()
        assert status.state is SaveState.SUCCESS
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert status.state is SaveState.IDLE
    assert [s["state"] for s in states] == ["saving", "success", "idle"]
    assert all(s["resource"] == "settings" for s in states)


def test_new_transition_cancels_pending_reset():
    status = SaveStatusIndicator("dictionary", success_reset_s=0.02, error_reset_s=0.2)

    async def scenario():
        status.success()
        status.error("nope")
        await asyncio.sleep(0.05)
        return status.state

    assert asyncio.run(scenario()) is SaveState.ERROR
    assert status.message == "nope"


def test_without_loop_state_sticks():
    status = SaveStatusIndicator("settings")
    status.success()
    assert status.state is SaveState.SUCCESS
    status.reset()
    assert status.state is SaveState.IDLE


def test_dispose_cancels_timer():
    status = SaveStatusIndicator("settings", success_reset_s=0.01)

    async def scenario():
        status.success()
        status.dispose()
        await asyncio.sleep(0.03)

    asyncio.run(scenario())
    assert status.state is SaveState.SUCCESS


def test_module_docstring_has_no_escape_sequences():
    from gui.services import save_status

    assert "\\" not in save_status.__doc__
