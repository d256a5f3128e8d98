"""
edifice component tests. One offscreen App session drives both wrappers
through autorun, a controller swap and unmount; the tests assert on what
the builders and controllers recorded along the way.
"""

import asyncio
import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

pytest.importorskip("PySide6.QtWidgets")
pytest.importorskip("edifice")

from edifice import App, Label, Window, component, use_async, use_state  # noqa: E402
from PySide6 import QtCore  # noqa: E402

from async_wrapper import AsyncController, AsyncUsageError, LoadState, success  # noqa: E402
from async_wrapper.components import AsyncControllerWrapper, AsyncWrapper, _relay_errors  # noqa: E402

SESSION_TIMEOUT_MS = 15000


async def wait_until(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise TimeoutError("condition not reached in time")
        await asyncio.sleep(0.01)


def _statuses(states):
    """Status sequence with consecutive repeats (plain re-renders) removed."""
    out = []
    for state in states:
        if not out or out[-1] is not state.status:
            out.append(state.status)
    return out


@pytest.fixture(scope="module")
def session():
    first = AsyncController(lambda: "first")
    second = AsyncController(lambda: "second")
    records = {
        "inline": [],
        "external": [],
        "owned": [],
        "owned_controllers": [],
        "inline_success": [],
        "error": None,
    }
    holder = {}

    async def slow_inline():
        await asyncio.sleep(0.05)
        return "inline"

    def inline_builder(trigger, state):
        records["inline"].append(state)
        Label(text=f"inline: {state.status.value}")

    def external_builder(state, controller):
        records["external"].append(state)
        Label(text=f"external: {state.status.value}")

    def owned_builder(state, controller):
        records["owned"].append(state)
        records["owned_controllers"].append(controller)
        Label(text=f"owned: {state.status.value}")

    @component
    def Root(self):
        phase, set_phase = use_state({"show": True, "controller": first})

        async def drive():
            try:
                await wait_until(
                    lambda: any(s.is_success for s in records["inline"])
                    and any(s.is_success for s in records["external"])
                    and any(s.is_success for s in records["owned"])
                )
                records["first_attached_before_swap"] = first.is_attached

                set_phase(lambda p: {**p, "controller": second})
                await wait_until(lambda: second.is_attached)
                records["first_after_swap"] = (first.is_attached, first.is_disposed)
                await second.fetch()
                await wait_until(lambda: records["external"][-1] == success("second"))

                owned = records["owned_controllers"][-1]
                records["owned_attached_before_unmount"] = owned.is_attached
                set_phase(lambda p: {**p, "show": False})
                await wait_until(lambda: not second.is_attached and owned.is_disposed)
                records["second_after_unmount"] = (second.is_attached, second.is_disposed)
                records["owned_after_unmount"] = owned.is_disposed
            except Exception as exc:
                records["error"] = exc
            finally:
                holder["app"].stop()

        use_async(drive, ())

        with Window(title="async_wrapper test"):
            if phase["show"]:
                AsyncWrapper(
                    fetch=slow_inline,
                    builder=inline_builder,
                    on_success=lambda data, rerun: records["inline_success"].append(data),
                    autorun=True,
                )
                AsyncControllerWrapper(builder=external_builder, controller=phase["controller"], autorun=True)
                AsyncControllerWrapper(builder=owned_builder, fetch=lambda: "owned", autorun=True)
            else:
                Label(text="unmounted")

    app = App(Root())
    holder["app"] = app
    QtCore.QTimer.singleShot(SESSION_TIMEOUT_MS, app.stop)
    app.start()

    records["first"] = first
    records["second"] = second
    return records


def test_session_completed(session):
    assert session["error"] is None


def test_inline_autorun_renders_stale_pending_success(session):
    assert _statuses(session["inline"]) == [LoadState.STALE, LoadState.PENDING, LoadState.SUCCESS]
    assert session["inline"][-1] == success("inline")
    assert session["inline_success"] == ["inline"]


def test_controller_autorun_reaches_success(session):
    assert session["external"][0].is_stale
    assert success("first") in session["external"]
    assert session["first_attached_before_swap"] is True
    assert _statuses(session["owned"])[0] is LoadState.STALE
    assert session["owned"][-1] == success("owned")


def test_controller_prop_swap_moves_attachment(session):
    # Old external controller is detached, not disposed.
    assert session["first_after_swap"] == (False, False)
    assert session["external"][-1] == success("second")


def test_unmount_detaches_external_controller(session):
    assert session["second_after_unmount"] == (False, False)


def test_unmount_disposes_owned_controller(session):
    assert session["owned_attached_before_unmount"] is True
    assert session["owned_after_unmount"] is True


def test_effect_errors_are_kept_for_the_next_render():
    stored = []

    def setup():
        raise AsyncUsageError("disposed controller")

    guarded = _relay_errors(lambda updater: stored.append(updater(None)), setup)
    assert guarded() is None
    assert len(stored) == 1
    assert isinstance(stored[0], AsyncUsageError)

    cleanup = object()
    assert _relay_errors(stored.append, lambda: cleanup)() is cleanup
    assert len(stored) == 1
