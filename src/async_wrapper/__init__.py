"""
async_wrapper - lifecycle helpers for a single asynchronous operation.

Tracks stale -> pending -> success/error for one operation and hands the
current state to a render callback. ``components`` holds the edifice
bindings; the rest is GUI-independent.
"""

from .errors import AsyncUsageError
from .state import (
    AsyncState,
    Failure,
    LoadState,
    Pending,
    Stale,
    Success,
    capture,
    failure,
    pending,
    stale,
    success,
)
from .controller import AsyncController
from .lifecycle import ControlledFetchLifecycle, FetchLifecycle, FetchOptions

__version__ = "1.0.0"

__all__ = [
    "AsyncUsageError",
    "AsyncState",
    "LoadState",
    "Stale",
    "Pending",
    "Success",
    "Failure",
    "stale",
    "pending",
    "success",
    "failure",
    "capture",
    "AsyncController",
    "FetchLifecycle",
    "ControlledFetchLifecycle",
    "FetchOptions",
]
