"""
Set semantics over a remote store set.
"""

import inspect
from typing import Any, AsyncIterator, Callable, List


def _decode(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return value


class ManagedSet:
    """A set stored under ``id`` in the key/value store."""

    def __init__(self, id: str, client: Any):
        self.id = id
        self.client = client

    async def add(self, member: Any) -> "ManagedSet":
        await self.client.sadd(self.id, member)
        return self

    async def clear(self):
        await self.client.delete(self.id)

    async def delete(self, member: Any) -> bool:
        return bool(await self.client.srem(self.id, member))

    async def entries(self) -> List[Any]:
        members = await self.client.smembers(self.id)
        return [_decode(member) for member in members]

    async def for_each(self, callback: Callable[[Any, Any, "ManagedSet"], Any]):
        """Call ``callback(value, value, set)`` for every member."""
        for value in await self.entries():
            result = callback(value, value, self)
            if inspect.isawaitable(result):
                await result

    async def has(self, member: Any) -> bool:
        return bool(await self.client.sismember(self.id, member))

    async def size(self) -> int:
        return await self.client.scard(self.id)

    async def values(self) -> AsyncIterator[Any]:
        """Iterate members page by page with SSCAN."""
        cursor = 0
        while True:
            cursor, members = await self.client.sscan(self.id, cursor)
            for member in members:
                yield _decode(member)
            if int(cursor) == 0:
                break
