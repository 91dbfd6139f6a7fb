"""
Lifecycle observer for the store connection.
"""

import inspect
from typing import Any, Callable, Dict, List

from shared.logging import get_logger


LIFECYCLE_EVENTS = ("connect", "ready", "close", "reconnecting", "error")

Listener = Callable[..., Any]


class LifecycleEvents:
    """Callback registry for connection lifecycle events.

    Listeners may be plain functions or coroutine functions. A failing
    listener is logged and does not stop the others.
    """

    def __init__(self):
        self.logger = get_logger("cache.events")
        self._listeners: Dict[str, List[Listener]] = {name: [] for name in LIFECYCLE_EVENTS}

    def _check(self, event: str):
        if event not in self._listeners:
            raise ValueError(f"Unknown lifecycle event: {event}")

    def on(self, event: str, listener: Listener) -> Listener:
        self._check(event)
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Listener):
        self._check(event)
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)

    def listeners(self, event: str) -> List[Listener]:
        self._check(event)
        return list(self._listeners[event])

    async def emit(self, event: str, payload: Any = None):
        self._check(event)
        for listener in list(self._listeners[event]):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error("Lifecycle listener failed", lifecycle_event=event, error=str(e))
