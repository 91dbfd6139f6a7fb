"""
Timeout guard for in-flight computations.

Races an awaitable against a timer. When the timer wins, only the caller's
wait is abandoned: the underlying operation keeps running.
"""

import asyncio
import math
from typing import Any, Awaitable, Generator, Optional

from shared.errors import CacheTimeoutError


def validate_timeout(timeout: Any) -> bool:
    """Timeouts are strictly positive, finite numbers of milliseconds."""
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        return False
    return math.isfinite(timeout) and timeout > 0


class Deadline:
    """Awaitable wrapper settling with the operation or a timeout error."""

    def __init__(self, operation: Awaitable[Any], timeout: float, error: Optional[BaseException] = None):
        loop = asyncio.get_running_loop()
        self.timeout = timeout
        self.error = error
        self._waiter: asyncio.Future = loop.create_future()
        self._operation = asyncio.ensure_future(operation)
        self._timer: Optional[asyncio.TimerHandle] = loop.call_later(timeout / 1000, self._expire)
        self._operation.add_done_callback(self._settle)

    def _expire(self):
        self._timer = None
        if self._waiter.done():
            return
        error = self.error
        if error is None:
            error = CacheTimeoutError(f"Operation timed out after {self.timeout} milliseconds")
        self._waiter.set_exception(error)

    def _settle(self, operation: asyncio.Future):
        self.clear()
        if operation.cancelled():
            if not self._waiter.done():
                self._waiter.cancel()
            return
        # Retrieve the outcome even when nobody waits for it anymore
        error = operation.exception()
        if self._waiter.done():
            return
        if error is not None:
            self._waiter.set_exception(error)
        else:
            self._waiter.set_result(operation.result())

    def clear(self):
        """Stop the timer; the wait then lasts as long as the operation."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def operation(self) -> asyncio.Future:
        return self._operation

    def __await__(self) -> Generator[Any, None, Any]:
        return self._waiter.__await__()


def with_timeout(operation: Awaitable[Any], timeout: Any, error: Optional[BaseException] = None) -> Deadline:
    """Wrap ``operation`` so awaiting it fails after ``timeout`` milliseconds.

    Misconfiguration is reported right away, before anything is scheduled.
    """
    if not validate_timeout(timeout):
        if asyncio.iscoroutine(operation):
            operation.close()
        raise TypeError(f'Expected "timeout" to be a positive number, got "{timeout}"')
    return Deadline(operation, timeout, error)
