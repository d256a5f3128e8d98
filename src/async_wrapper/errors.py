from __future__ import annotations


class AsyncUsageError(RuntimeError):
    """Raised when the async wrapper API is misused by the caller.

    Covers reading data or error from a state of the wrong status and
    driving a controller that is disposed, unattached or already attached.
    """
