# filename: state.py
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from enum import Enum
from types import TracebackType
from typing import Any, Awaitable, Callable, ClassVar, Generic, Optional, TypeVar, Union

from .errors import AsyncUsageError

T = TypeVar("T")  # success value type
R = TypeVar("R")  # handler return type


class LoadState(Enum):
    """Lifecycle status of an asynchronous operation."""

    STALE = "stale"      # nothing started yet
    PENDING = "pending"  # an invocation is unresolved
    SUCCESS = "success"
    ERROR = "error"


class AsyncState(Generic[T]):
    """Immutable snapshot of an async operation.

    Concrete values are one of ``Stale``, ``Pending``, ``Success`` or
    ``Failure``; every transition produces a new value. ``data``, ``error``
    and ``trace`` read as ``None`` outside their own status.

    Base class only: build values with ``stale()``, ``pending()``,
    ``success()`` or ``failure()``.
    """

    status: ClassVar[LoadState]

    def __new__(cls, *args: Any, **kwargs: Any):
        if cls is AsyncState:
            raise TypeError("AsyncState is a base class; use stale(), pending(), success() or failure().")
        return super().__new__(cls)

    data: Optional[T] = None
    error: Optional[object] = None
    trace: Optional[TracebackType] = None

    @property
    def is_stale(self) -> bool:
        return self.status is LoadState.STALE

    @property
    def is_pending(self) -> bool:
        return self.status is LoadState.PENDING

    @property
    def is_success(self) -> bool:
        return self.status is LoadState.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status is LoadState.ERROR

    @property
    def is_complete(self) -> bool:
        return self.is_success or self.is_error

    def require_data(self) -> T:
        if not self.is_success:
            raise AsyncUsageError(f"require_data called in wrong state: {self.status.value}")
        return self.data  # type: ignore[return-value]

    def require_error(self) -> object:
        if not self.is_error:
            raise AsyncUsageError(f"require_error called in wrong state: {self.status.value}")
        return self.error

    def when(
        self,
        *,
        stale: Callable[[], R],
        pending: Callable[[], R],
        success: Callable[[T], R],
        error: Callable[[object, Optional[TracebackType]], R],
    ) -> R:
        """Dispatch on status; all four handlers are required."""
        match self:
            case Stale():
                return stale()
            case Pending():
                return pending()
            case Success(data=d):
                return success(d)
            case Failure(error=e, trace=tb):
                return error(e, tb)
            case _:
                raise TypeError("Unknown state variant")

    def maybe_when(
        self,
        orelse: Callable[[], R],
        *,
        stale: Optional[Callable[[], R]] = None,
        pending: Optional[Callable[[], R]] = None,
        success: Optional[Callable[[T], R]] = None,
        error: Optional[Callable[[object, Optional[TracebackType]], R]] = None,
    ) -> R:
        """Dispatch on status, falling back to ``orelse`` for missing handlers."""
        return self.when(
            stale=stale or orelse,
            pending=pending or orelse,
            success=success or (lambda _data: orelse()),
            error=error or (lambda _err, _tb: orelse()),
        )


@dataclass(frozen=True)
class Stale(AsyncState[Any]):
    status: ClassVar[LoadState] = LoadState.STALE


@dataclass(frozen=True)
class Pending(AsyncState[Any]):
    # Strictly "an invocation started and has not resolved"
    status: ClassVar[LoadState] = LoadState.PENDING


@dataclass(frozen=True)
class Success(AsyncState[T]):
    data: T = field()
    status: ClassVar[LoadState] = LoadState.SUCCESS


@dataclass(frozen=True)
class Failure(AsyncState[Any]):
    error: object = field()
    # Traceback objects never compare equal; keep them out of __eq__.
    trace: Optional[TracebackType] = field(default=None, compare=False, repr=False)
    status: ClassVar[LoadState] = LoadState.ERROR


def stale() -> AsyncState[T]:
    return Stale()


def pending() -> AsyncState[T]:
    return Pending()


def success(data: T) -> AsyncState[T]:
    return Success(data)


def failure(error: object, trace: Optional[TracebackType] = None) -> AsyncState[T]:
    return Failure(error, trace)


async def capture(operation: Callable[[], Union[T, Awaitable[T]]]) -> AsyncState[T]:
    """Run ``operation`` and fold its outcome into ``Success`` or ``Failure``.

    The callable may return a plain value or an awaitable. Only ``Exception``
    subclasses are captured; cancellation propagates.
    """
    try:
        result = operation()
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        return Failure(exc, exc.__traceback__)
    return Success(result)
