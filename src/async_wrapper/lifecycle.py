"""
Fetch lifecycle: the state machine behind the wrapper components.

Stale -> Pending -> Success | Error, re-entrant for the life of the
consumer. Runs on the host's asyncio loop; no threads involved.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Set, TypeVar, Union

from .controller import AsyncController, Operation
from .errors import AsyncUsageError
from .state import AsyncState, capture, failure, pending, stale

T = TypeVar("T")

Rerun = Callable[[], Awaitable[None]]
SuccessHook = Callable[[Any, Rerun], Union[None, Awaitable[None]]]
ErrorHook = Callable[[object, Rerun], Union[None, Awaitable[None]]]
StateListener = Callable[[AsyncState[Any]], None]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchOptions:
    """Trigger policy for a lifecycle."""

    autorun: bool = False           # trigger once after mount
    allow_concurrent: bool = False  # run again while still pending

    def __post_init__(self):
        for name in ("autorun", "allow_concurrent"):
            if not isinstance(getattr(self, name), bool):
                raise TypeError(f"FetchOptions.{name} must be a bool")


async def _settle(result: Union[None, Awaitable[None]]) -> None:
    if inspect.isawaitable(result):
        await result


class FetchLifecycle(Generic[T]):
    """Owns the current ``AsyncState`` of one consumer and runs its operation.

    ``on_state`` is called with every new state while the consumer is live,
    which is how a GUI layer gets re-rendered. After ``unmount()`` late
    resolutions are dropped without touching state or hooks.
    """

    def __init__(
        self,
        fetch: Optional[Operation[T]],
        *,
        on_state: Optional[StateListener] = None,
        on_success: Optional[SuccessHook] = None,
        on_error: Optional[ErrorHook] = None,
        options: Optional[FetchOptions] = None,
    ):
        self.fetch = fetch
        self.on_state = on_state
        self.on_success = on_success
        self.on_error = on_error
        self.options = options or FetchOptions()

        self._state: AsyncState[T] = stale()
        self._in_flight = 0
        self._mounted = False
        self._alive = True
        self._tasks: Set[asyncio.Task] = set()

    @property
    def state(self) -> AsyncState[T]:
        return self._state

    @property
    def in_flight(self) -> int:
        """Number of invocations that have started and not yet settled."""
        return self._in_flight

    @property
    def alive(self) -> bool:
        return self._alive

    async def run(self) -> None:
        """Trigger one invocation of the operation.

        Never raises for a failing operation; the failure lands in the
        ``Failure`` state and the error hook instead. A success hook that
        raises is treated the same way. Cancellation is recorded as a
        ``Failure`` and then re-raised.
        """
        if self._state.is_pending and not self.options.allow_concurrent:
            logger.debug("trigger ignored: invocation already pending")
            return

        operation = self._resolve_operation()
        self._in_flight += 1
        try:
            self._set_state(pending())
            try:
                outcome = await capture(operation)
            except asyncio.CancelledError as exc:
                # Leave Pending so later triggers are not blocked by the guard.
                self._set_state(failure(exc, exc.__traceback__))
                raise

            if not self._alive:
                logger.debug("discarding %s outcome for unmounted consumer", outcome.status.value)
                return

            self._set_state(outcome)
            if outcome.is_success and self.on_success is not None:
                try:
                    await _settle(self.on_success(outcome.data, self.run))
                except Exception as exc:
                    logger.debug("success hook raised %r", exc)
                    if not self._alive:
                        return
                    outcome = failure(exc, exc.__traceback__)
                    self._set_state(outcome)

            if outcome.is_error and self.on_error is not None:
                await _settle(self.on_error(outcome.error, self.run))
        finally:
            self._in_flight -= 1

    def mount(self) -> Optional[asyncio.Task]:
        """Mark the consumer as rendered; schedule the autorun trigger.

        The autorun invocation is queued on the running loop rather than
        awaited here, so state never changes before the first render.
        Returns the scheduled task, or ``None`` when nothing was scheduled.
        """
        if self._mounted:
            return None
        self._mounted = True
        if not self.options.autorun:
            return None
        task = asyncio.get_running_loop().create_task(self.run())
        self._tasks.add(task)
        task.add_done_callback(self._autorun_done)
        return task

    def unmount(self) -> None:
        """Tear the consumer down. In-flight invocations finish unobserved."""
        self._alive = False

    def _autorun_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("autorun trigger failed", exc_info=exc)

    def _resolve_operation(self) -> Operation[T]:
        if self.fetch is None:
            raise AsyncUsageError("FetchLifecycle has no operation to run.")
        return self.fetch

    def _set_state(self, new_state: AsyncState[T]) -> None:
        if not self._alive:
            return
        logger.debug("state %s -> %s", self._state.status.value, new_state.status.value)
        self._state = new_state
        if self.on_state is not None:
            self.on_state(new_state)


class ControlledFetchLifecycle(FetchLifecycle[T]):
    """Lifecycle driven through an ``AsyncController``.

    With ``controller=None`` an internal controller is built around ``fetch``
    and owned by this lifecycle: it is disposed on swap or unmount. A
    caller-supplied controller is only detached; disposing it is the
    caller's job.

    Construction only picks the controller. It is attached in ``mount()``,
    so building a lifecycle never touches shared controllers.
    """

    def __init__(
        self,
        controller: Optional[AsyncController[T]] = None,
        *,
        fetch: Optional[Operation[T]] = None,
        **kwargs: Any,
    ):
        if controller is None and fetch is None:
            raise AsyncUsageError("Provide either a controller or a fetch operation.")
        super().__init__(fetch, **kwargs)
        self._controller: Optional[AsyncController[T]] = None
        self._owns_controller = False
        self.check_controller(controller)
        if controller is None:
            self._controller, self._owns_controller = AsyncController(self._call_fetch), True
        else:
            self._controller = controller

    @property
    def controller(self) -> Optional[AsyncController[T]]:
        return self._controller

    @property
    def owns_controller(self) -> bool:
        return self._owns_controller

    def check_controller(self, controller: Optional[AsyncController[T]]) -> None:
        """Raise ``AsyncUsageError`` if ``use_controller(controller)`` would fail.

        Side-effect free, so a render pass can call it and surface misuse
        before any effect runs.
        """
        if not self._alive:
            raise AsyncUsageError("ControlledFetchLifecycle is unmounted.")
        if controller is None:
            if not self._owns_controller and self.fetch is None:
                raise AsyncUsageError("Cannot create an owned controller without a fetch operation.")
            return
        if controller is self._controller:
            return
        if controller.is_disposed:
            raise AsyncUsageError("Cannot bind a disposed AsyncController.")
        if controller.is_attached:
            raise AsyncUsageError("AsyncController is already attached to a consumer.")

    def use_controller(self, controller: Optional[AsyncController[T]]) -> None:
        """Bind to ``controller``, or to an owned one when ``None``.

        Once mounted, the new controller is attached before the old one is
        released, so a failed attach leaves the current binding untouched.
        """
        self.check_controller(controller)
        if controller is None:
            if self._owns_controller:
                return
            new_controller, owned = AsyncController(self._call_fetch), True
        else:
            if controller is self._controller:
                return
            new_controller, owned = controller, False

        if self._mounted:
            new_controller.attach(self.run)
        self._release_controller()
        self._controller = new_controller
        self._owns_controller = owned

    def mount(self) -> Optional[asyncio.Task]:
        if not self._mounted and self._alive and self._controller is not None:
            self._controller.attach(self.run)
        return super().mount()

    def unmount(self) -> None:
        super().unmount()
        self._release_controller()
        self._controller = None
        self._owns_controller = False

    def _release_controller(self) -> None:
        old = self._controller
        if old is None:
            return
        if self._owns_controller:
            old.dispose()
        else:
            old.detach()

    def _call_fetch(self) -> Union[T, Awaitable[T]]:
        # Owned controllers read the latest fetch so prop updates apply.
        return super()._resolve_operation()()

    def _resolve_operation(self) -> Operation[T]:
        if self._controller is None:
            raise AsyncUsageError("ControlledFetchLifecycle has no controller bound.")
        return self._controller.operation
