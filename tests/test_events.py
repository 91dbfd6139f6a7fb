"""
Unit tests for lifecycle events.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from cache_client import LifecycleEvents


class TestLifecycleEvents:
    """Test cases for LifecycleEvents."""

    @pytest.mark.asyncio
    async def test_emit_calls_sync_and_async_listeners(self):
        """Test every listener receives the payload."""
        events = LifecycleEvents()
        sync_listener = MagicMock()
        async_listener = AsyncMock()
        events.on("ready", sync_listener)
        events.on("ready", async_listener)

        await events.emit("ready", "client")

        sync_listener.assert_called_once_with("client")
        async_listener.assert_awaited_once_with("client")

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_stop_others(self):
        """Test a raising listener is logged and the rest still run."""
        events = LifecycleEvents()
        after = MagicMock()
        events.on("close", MagicMock(side_effect=RuntimeError("boom")))
        events.on("close", after)

        await events.emit("close")

        after.assert_called_once_with(None)

    @pytest.mark.asyncio
    async def test_off_removes_listener(self):
        """Test removed listeners are not called."""
        events = LifecycleEvents()
        listener = MagicMock()
        events.on("connect", listener)
        events.off("connect", listener)

        await events.emit("connect")

        listener.assert_not_called()
        assert events.listeners("connect") == []

    def test_unknown_event(self):
        """Test unknown event names are rejected."""
        with pytest.raises(ValueError):
            LifecycleEvents().on("disconnect", MagicMock())
