"""
Batch cache-aside client.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

from shared.errors import ValidationError

from .client import CacheClient, Fallback
from .errors_log import ErrorKind, ErrorValue
from .options import OptionsLike, TryGetOptions, resolve_cache_query, resolve_deserializer


def _invalid_batch_arguments(keys: Any, values: Any) -> bool:
    if not isinstance(keys, (list, tuple)) or not isinstance(values, (list, tuple)):
        return True
    if len(keys) == 0 or len(values) == 0:
        return True
    return len(keys) != len(values)


def _align(values: Optional[Sequence[Any]], size: int) -> List[Any]:
    """Pad or trim fallback results to one slot per requested key."""
    values = list(values or [])[:size]
    return values + [None] * (size - len(values))


class BatchCacheClient(CacheClient):
    """Cache client with multi-key operations.

    ``try_get_batch`` reads every key in one round trip and calls the
    fallback once with the raw keys that were missing. Results keep the
    order and multiplicity of the requested keys.
    """

    def _argument_error(self, message: str, details: Optional[Dict[str, Any]] = None) -> ValidationError:
        error = ValidationError(message, details)
        self.handle_error(error, "Argument error", ErrorKind.VALIDATION)
        return error

    def hash_key_batch(self, keys: List[Any]) -> List[Any]:
        if not isinstance(keys, (list, tuple)):
            raise self._argument_error("Argument error: keys must be a list", {"type": type(keys).__name__})
        return self.codec.normalize_batch(keys)

    def are_hash_keys(self, keys: List[Any]) -> List[bool]:
        if not isinstance(keys, (list, tuple)):
            raise self._argument_error("Argument error: keys must be a list", {"type": type(keys).__name__})
        return self.codec.are_canonical(keys)

    async def get_batch(
        self,
        keys: List[Any],
        defaults: Optional[Sequence[Any]] = None,
        *,
        deserialize: Any = True,
        buffer: bool = False,
    ) -> List[Any]:
        """Get a list of values from the store.

        Missing keys come back as ``None``, or as ``defaults[index]`` when a
        default is given for that position.
        """
        keys = self.hash_key_batch(keys)
        if not keys:
            return []

        defaults = defaults or []
        deserializer = resolve_deserializer(deserialize, self.deserialize)

        # MGET answers every key, None where nothing is stored
        values = await self.client.mget(keys)

        results = []
        for index, value in enumerate(values):
            value = self._decode(value, buffer)
            if value is not None and deserializer is not None:
                value = deserializer(value)
            if value is None and index < len(defaults):
                value = defaults[index]
            results.append(value)

        return results

    async def set_batch(
        self,
        keys: List[Any],
        values: List[Any],
        ttl: Optional[int] = None,
        *,
        serialize: Optional[Callable[[Any], Any]] = None,
    ) -> List[Any]:
        """Write ``values`` under ``keys`` in one transaction.

        Falsy values are not written.
        """
        if _invalid_batch_arguments(keys, values):
            raise self._argument_error(
                "Argument error: keys and values must be non-empty lists of the same length",
                {
                    "keys": len(keys) if isinstance(keys, (list, tuple)) else None,
                    "values": len(values) if isinstance(values, (list, tuple)) else None,
                }
            )

        serialize = serialize or self.serialize
        expiry = self._expiry(ttl)
        keys = self.hash_key_batch(keys)

        async with self.client.pipeline(transaction=True) as pipe:
            for key, value in zip(keys, values):
                if not value:
                    continue
                if not isinstance(value, (str, bytes)):
                    value = serialize(value)
                pipe.set(key, value, **expiry)
            return await pipe.execute()

    async def delete_batch(self, keys: Any) -> Any:
        if not isinstance(keys, (list, tuple)):
            keys = [keys]
        keys = self.hash_key_batch(keys)
        if not keys:
            return 0
        return await self.client.delete(*keys)

    async def _read_cached(self, store_keys: List[Any], options: TryGetOptions) -> List[Any]:
        """Query the keys that opted into the cache, aligned with ``store_keys``."""
        should_query = resolve_cache_query(options)
        positions = [index for index, key in enumerate(store_keys) if should_query(key)]

        cached: List[Any] = [None] * len(store_keys)
        if not positions:
            return cached

        values = await self.get_batch(
            [store_keys[index] for index in positions],
            [],
            deserialize=options.deserialize,
            buffer=options.buffer
        )
        for index, value in zip(positions, values):
            cached[index] = value
        return cached

    async def try_get_batch(self, keys: List[Any], fallback: Fallback, options: OptionsLike = None, **overrides: Any) -> Any:
        """Get cached values for ``keys``, computing the missing ones with ``fallback``.

        ``fallback`` is called once with the list of missing raw keys and
        should return their values in the same order (``None`` for keys it
        cannot resolve). Repeated keys are fetched once and fanned out to
        every position they occupy.
        """
        options = self._merge_options(options, overrides)
        raw_keys = list(keys) if isinstance(keys, (list, tuple)) else keys
        store_keys = self.hash_key_batch(raw_keys)

        if not store_keys:
            return []

        self.logger.debug("Try to fetch batch", count=len(store_keys))

        cached: List[Any] = [None] * len(store_keys)
        try:
            cached = await self._read_cached(store_keys, options)
        except Exception as e:
            self.handle_error(e, "Cache batch get error", ErrorKind.STORE)
            if options.throw_on_error:
                raise

        values: List[Any] = [None] * len(store_keys)
        fallback_keys: List[Any] = []
        # fallback slot -> original positions sharing that store key
        fallback_positions: List[List[int]] = []
        slots: Dict[Any, int] = {}

        for index, value in enumerate(cached):
            if value is not None:
                values[index] = value
                continue
            store_key = store_keys[index]
            try:
                slot = slots.get(store_key)
                hashable = True
            except TypeError:
                # Unhashable raw keys (hash_keys off) each get their own slot
                slot, hashable = None, False
            if slot is None:
                slot = len(fallback_keys)
                if hashable:
                    slots[store_key] = slot
                fallback_keys.append(raw_keys[index])
                fallback_positions.append([])
            fallback_positions[slot].append(index)

        hits = len(store_keys) - sum(len(positions) for positions in fallback_positions)
        if self.metrics:
            self.metrics.record_hits(hits)
            self.metrics.record_misses(len(store_keys) - hits)

        if not fallback_keys:
            self.logger.debug("All keys cached", count=len(store_keys))
            return values

        try:
            self.logger.debug("Calling batch fallback", count=len(fallback_keys))
            fetched = await self._run_fallback(fallback, fallback_keys, options, "batch")
        except Exception as e:
            return self._fallback_failed(e, "Cache batch fallback error", options)

        fetched = _align(fetched, len(fallback_keys))
        for value in fetched:
            if value is not None:
                self.make_timestamp(value, options.add_timestamp)

        stored: List[Any] = [None] * len(fallback_keys)
        if any(fetched):
            try:
                await self.set_batch(fallback_keys, fetched, options.ttl, serialize=options.serialize)
                stored = await self.get_batch(fallback_keys, [], deserialize=options.deserialize, buffer=options.buffer)
            except Exception as e:
                self.handle_error(e, "Cache setBatch error", ErrorKind.STORE)
                if options.throw_on_error:
                    raise
                return ErrorValue(e)

        for slot, positions in enumerate(fallback_positions):
            value = stored[slot] if stored[slot] is not None else fetched[slot]
            for index in positions:
                values[index] = value

        return values
