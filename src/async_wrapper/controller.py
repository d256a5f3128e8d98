from __future__ import annotations

import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar, Union

from .errors import AsyncUsageError

T = TypeVar("T")

Operation = Callable[[], Union[T, Awaitable[T]]]
Trigger = Callable[[], Awaitable[None]]

logger = logging.getLogger(__name__)


class AsyncController(Generic[T]):
    """Holds an async operation and drives the single consumer attached to it.

    The controller never runs ``operation`` on its own: ``fetch()`` forwards
    to the trigger of the attached consumer, which owns the state machine.
    At most one consumer may be attached at a time.
    """

    def __init__(self, operation: Operation[T]):
        if not callable(operation):
            raise TypeError("AsyncController requires a callable operation.")
        self._operation = operation
        self._trigger: Optional[Trigger] = None
        self._disposed = False

    @property
    def operation(self) -> Operation[T]:
        return self._operation

    @property
    def is_attached(self) -> bool:
        return self._trigger is not None and not self._disposed

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    async def fetch(self) -> None:
        """Run the attached consumer's trigger once."""
        self._ensure_not_disposed("fetch")
        trigger = self._trigger
        if trigger is None:
            raise AsyncUsageError("AsyncController.fetch called before a consumer was attached.")
        await trigger()

    def attach(self, trigger: Trigger) -> None:
        self._ensure_not_disposed("attach")
        if self._trigger is not None:
            raise AsyncUsageError("AsyncController is already attached to a consumer.")
        self._trigger = trigger
        logger.debug("controller %#x attached", id(self))

    def detach(self) -> None:
        if self._trigger is None:
            return
        self._trigger = None
        logger.debug("controller %#x detached", id(self))

    def dispose(self) -> None:
        if self._disposed:
            return
        self._trigger = None
        self._disposed = True
        logger.debug("controller %#x disposed", id(self))

    def _ensure_not_disposed(self, action: str) -> None:
        if self._disposed:
            raise AsyncUsageError(f"AsyncController.{action} called after dispose().")

    def __repr__(self) -> str:
        flags = "disposed" if self._disposed else ("attached" if self._trigger else "detached")
        return f"AsyncController({flags})"
