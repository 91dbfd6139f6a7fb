"""
Unit tests for the timeout guard.
"""

import asyncio
import math

import pytest

from cache_client import CacheTimeoutError, with_timeout, validate_timeout
from shared.errors import CacheClientError, is_timeout_error


async def delayed(value, delay):
    await asyncio.sleep(delay)
    return value


async def failing(error, delay):
    await asyncio.sleep(delay)
    raise error


class TestWithTimeout:
    """Test cases for with_timeout."""

    @pytest.mark.asyncio
    async def test_resolves_before_timeout(self):
        """Test the operation result is returned when it beats the timer."""
        result = await with_timeout(delayed("expected", 0.01), 100)
        assert result == "expected"

    @pytest.mark.asyncio
    async def test_times_out_with_408(self):
        """Test a slow operation fails with a 408 timeout error."""
        with pytest.raises(CacheTimeoutError) as exc_info:
            await with_timeout(delayed("late", 0.2), 10)

        assert exc_info.value.code == 408
        assert is_timeout_error(exc_info.value)

    @pytest.mark.asyncio
    async def test_times_out_with_custom_error(self):
        """Test the supplied error is raised on timeout."""
        error = CacheClientError("Fallback function timeout", 408)

        with pytest.raises(CacheClientError) as exc_info:
            await with_timeout(delayed("late", 0.2), 10, error)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_operation_error_propagates(self):
        """Test operation failures win over the timer."""
        with pytest.raises(ValueError, match="boom"):
            await with_timeout(failing(ValueError("boom"), 0.01), 100)

    @pytest.mark.asyncio
    async def test_operation_keeps_running_after_timeout(self):
        """Test the timeout abandons the wait without cancelling the operation."""
        finished = asyncio.Event()

        async def slow():
            await asyncio.sleep(0.05)
            finished.set()
            return "done"

        deadline = with_timeout(slow(), 10)
        with pytest.raises(CacheTimeoutError):
            await deadline

        await asyncio.wait_for(finished.wait(), 1)
        assert deadline.operation.result() == "done"

    @pytest.mark.asyncio
    async def test_clear_disables_timer(self):
        """Test clearing the timer lets a slow operation finish; clear is idempotent."""
        deadline = with_timeout(delayed("expected", 0.05), 10)
        deadline.clear()
        deadline.clear()

        assert await deadline == "expected"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout", [None, "2000", -100, 0, math.nan, math.inf, True])
    async def test_invalid_timeout_raises_type_error(self, timeout):
        """Test invalid durations fail before the race starts."""
        with pytest.raises(TypeError):
            with_timeout(delayed("expected", 0.01), timeout)


class TestValidateTimeout:
    """Test cases for validate_timeout."""

    def test_valid(self):
        assert validate_timeout(1)
        assert validate_timeout(0.5)

    def test_invalid(self):
        assert not validate_timeout(0)
        assert not validate_timeout(-1)
        assert not validate_timeout("10")
        assert not validate_timeout(float("nan"))
