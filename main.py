from edifice import App, Button, HBoxView, Label, VBoxView, Window, component, use_effect, use_memo

from async_wrapper import AsyncController
from async_wrapper.components import AsyncControllerWrapper, AsyncWrapper
from async_wrapper.log import configure_root

import asyncio
import logging
import random

logger = logging.getLogger("async_wrapper.example")

FETCH_DELAY_S = 2.0


async def fetch_data():
    """Simulated network call: slow, and fails about half the time."""
    await asyncio.sleep(FETCH_DELAY_S)
    if random.random() < 0.5:
        raise RuntimeError("Random error occurred!")
    return "Data loaded successfully!"


def status_label(state):
    return state.when(
        stale=lambda: Label("Nothing loaded yet", style={"color": "#888"}),
        pending=lambda: Label("Please wait....", style={"color": "#888"}),
        success=lambda data: Label(data, style={"color": "green"}),
        error=lambda err, _tb: Label(f"Error: {err}", style={"color": "red"}),
    )


@component
def Header(self, title):
    with HBoxView(style={"height": 50, "padding": 10, "align": "center"}):
        Label(text=title, style={"text-align": "center"})


@component
def InlineExample(self):
    def on_error(err, rerun):
        logger.info("inline fetch failed: %s", err)

    def build(trigger, state):
        async def on_click(_ev):
            await trigger()

        with VBoxView(style={"padding": 10}):
            Label(text="<h2>Inline callback</h2><hr>")
            status_label(state)
            Button("Fetch Data", enabled=not state.is_pending, on_click=on_click)

    AsyncWrapper(fetch=fetch_data, builder=build, on_error=on_error)


@component
def ControllerExample(self):
    # Caller-owned controller: this component disposes it, not the wrapper.
    controller = use_memo(lambda: AsyncController(fetch_data), ())

    def dispose_on_unmount():
        return controller.dispose

    use_effect(dispose_on_unmount, ())

    def on_success(data, rerun):
        logger.info("controller fetch finished: %s", data)

    def build(state, ctrl):
        async def on_click(_ev):
            await ctrl.fetch()

        with VBoxView(style={"padding": 10}):
            Label(text="<h2>Controller</h2><hr>")
            status_label(state)
            with HBoxView():
                Button("Fetch Data", enabled=not state.is_pending, on_click=on_click)
                Label(f"attached: {ctrl.is_attached}", style={"margin-left": 20})

    AsyncControllerWrapper(builder=build, controller=controller, on_success=on_success, autorun=True)


@component
def MyApp(self):
    with Window(title="AsyncWrapper Example"):
        Header(title="<h1>AsyncWrapper Example</h1>")
        with HBoxView():
            InlineExample()
            ControllerExample()


if __name__ == "__main__":
    configure_root()
    App(MyApp()).start()
