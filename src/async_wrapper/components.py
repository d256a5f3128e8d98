"""
edifice bindings for the fetch lifecycle.

Both components keep their lifecycle object across renders with
``use_memo`` and mirror its state into ``use_state`` so every transition
re-renders. ``builder`` is called during render and must create exactly
one root element, like any other edifice component body.

edifice discards exceptions raised from effect setup, so usage errors are
checked during render where possible, and anything an effect still raises
is stored and raised by the next render.
"""

from __future__ import annotations

from edifice import component, use_effect, use_memo, use_state

from .lifecycle import ControlledFetchLifecycle, FetchLifecycle, FetchOptions
from .state import stale


def _relay_errors(set_error, setup):
    def guarded():
        try:
            return setup()
        except Exception as exc:
            set_error(lambda _prev: exc)
            return None

    return guarded


def _apply_props(lifecycle, fetch, on_success, on_error, autorun, multiple_fetch):
    # Latest props win; a trigger always runs the current callbacks.
    lifecycle.fetch = fetch
    lifecycle.on_success = on_success
    lifecycle.on_error = on_error
    lifecycle.options = FetchOptions(autorun=autorun, allow_concurrent=multiple_fetch)


@component
def AsyncWrapper(self, fetch, builder, on_success=None, on_error=None, autorun=False, multiple_fetch=False):
    """
    Run ``fetch`` on demand and render through ``builder(trigger, state)``.

    fetch: zero-argument callable, sync or async
    builder: (trigger, AsyncState) -> None, trigger is an async callable
    on_success / on_error: optional hooks called with (value, rerun)
    autorun: trigger once after the first render
    multiple_fetch: allow a new trigger while still pending
    """
    state, set_state = use_state(stale())
    effect_error, set_effect_error = use_state(None)
    if effect_error is not None:
        raise effect_error

    lifecycle = use_memo(lambda: FetchLifecycle(fetch, on_state=set_state), ())
    _apply_props(lifecycle, fetch, on_success, on_error, autorun, multiple_fetch)

    def setup():
        lifecycle.mount()
        return lifecycle.unmount

    use_effect(_relay_errors(set_effect_error, setup), ())

    builder(lifecycle.run, state)


@component
def AsyncControllerWrapper(
    self,
    builder,
    controller=None,
    fetch=None,
    on_success=None,
    on_error=None,
    autorun=False,
    multiple_fetch=False,
):
    """
    Render through ``builder(state, controller)`` and run via ``controller.fetch()``.

    With ``controller=None`` an owned controller is built around ``fetch``
    and disposed with the component. A caller-supplied controller is
    attached after the first render, detached on unmount or when a
    different one is passed, and never disposed.
    """
    state, set_state = use_state(stale())
    effect_error, set_effect_error = use_state(None)
    if effect_error is not None:
        raise effect_error

    lifecycle = use_memo(
        lambda: ControlledFetchLifecycle(controller, fetch=fetch, on_state=set_state),
        (),
    )
    _apply_props(lifecycle, fetch, on_success, on_error, autorun, multiple_fetch)
    if lifecycle.alive:
        # Disposed or foreign controllers fail here, not inside the effect.
        lifecycle.check_controller(controller)

    def setup():
        lifecycle.mount()
        return lifecycle.unmount

    use_effect(_relay_errors(set_effect_error, setup), ())

    def swap_controller():
        lifecycle.use_controller(controller)

    use_effect(_relay_errors(set_effect_error, swap_controller), (controller,))

    builder(state, lifecycle.controller)
