"""
Shared fixtures for cache client tests.
"""

import fnmatch
import json
from typing import Any, Dict, List, Optional

import pytest

from cache_client import BatchCacheClient, CacheClient, UUID_CACHE_MATCHER


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


class FakePipeline:
    """Queues commands and applies them on execute, like a MULTI/EXEC block."""

    def __init__(self, store: "FakeStore"):
        self.store = store
        self.commands: List[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.commands = []
        return False

    def set(self, key, value, ex=None, px=None):
        self.commands.append(("set", key, value, ex, px))
        return self

    def delete(self, *keys):
        self.commands.append(("delete", keys))
        return self

    async def execute(self):
        self.store.executed.append(list(self.commands))
        results = []
        for command in self.commands:
            if command[0] == "set":
                _, key, value, ex, px = command
                results.append(await self.store.set(key, value, ex=ex, px=px))
            else:
                results.append(await self.store.delete(*command[1]))
        self.commands = []
        return results


class FakeStore:
    """In-memory stand-in for the store capability interface."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, bytes] = {key: _to_bytes(value) for key, value in (data or {}).items()}
        self.sets: Dict[str, set] = {}
        self.expiry: Dict[str, Dict[str, Any]] = {}
        self.executed: List[list] = []
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None, px=None):
        self.data[key] = _to_bytes(value)
        self.expiry[key] = {"ex": ex, "px": px}
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            if self.data.pop(key, None) is not None or self.sets.pop(key, None) is not None:
                removed += 1
        return removed

    async def mget(self, keys):
        return [self.data.get(key) for key in keys]

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def scan_iter(self, match=None, count=None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key.encode("utf-8")

    async def ping(self):
        return True

    async def aclose(self):
        self.closed = True

    async def sadd(self, name, *members):
        bucket = self.sets.setdefault(name, set())
        added = len([m for m in members if _to_bytes(m) not in bucket])
        bucket.update(_to_bytes(m) for m in members)
        return added

    async def srem(self, name, *members):
        bucket = self.sets.get(name, set())
        removed = len([m for m in members if _to_bytes(m) in bucket])
        bucket.difference_update(_to_bytes(m) for m in members)
        return removed

    async def smembers(self, name):
        return set(self.sets.get(name, set()))

    async def sismember(self, name, member):
        return int(_to_bytes(member) in self.sets.get(name, set()))

    async def scard(self, name):
        return len(self.sets.get(name, set()))

    async def sscan(self, name, cursor=0, count=2):
        members = sorted(self.sets.get(name, set()))
        cursor = int(cursor)
        page = members[cursor:cursor + count]
        next_cursor = cursor + count if cursor + count < len(members) else 0
        return next_cursor, page

    def stored_json(self, key):
        return json.loads(self.data[key].decode("utf-8"))


@pytest.fixture
def store():
    """Empty in-memory store."""
    return FakeStore()


@pytest.fixture
def cache(store):
    """Single-key cache client over the in-memory store."""
    return CacheClient(store)


@pytest.fixture
def batch_cache(store):
    """Batch cache client that keeps UUID keys readable."""
    return BatchCacheClient(store, hash_uuids=False, cache_key_matcher=UUID_CACHE_MATCHER)


@pytest.fixture
def users():
    """Users keyed by UUID."""
    return [
        ("70d6e4c7-4da7-4bc9-9ecd-53e0c06a22ef", {"user": 1, "name": "user1"}),
        ("b6fdfba9-d8f9-40a2-a2a7-51fc34dddffc", {"user": 2, "name": "user2"}),
        ("877fc553-0c31-49f0-b5b9-7beda30017d8", {"user": 3, "name": "user3"}),
    ]


@pytest.fixture
def make_store():
    """Build an in-memory store pre-loaded with data."""
    return FakeStore
