"""
Cache-aside client over a Redis-like key/value store.
"""

import inspect
from contextlib import nullcontext
from typing import Any, Awaitable, Callable, Dict, List, Optional, Pattern, Union

from shared.config import CacheSettings, DEFAULT_CACHE_KEY_PREFIX
from shared.errors import CacheTimeoutError, ConnectionTimeoutError, is_timeout_error
from shared.logging import get_logger
from shared.metrics import CacheMetrics

from . import defaults
from .errors_log import ErrorKind, ErrorLog, ErrorValue
from .events import LifecycleEvents
from .factory import create_client
from .keys import KeyCodec, key_hash_function, key_serializer
from .options import OptionsLike, TryGetOptions, merge_options, resolve_cache_query, resolve_deserializer
from .timeout import Deadline, validate_timeout, with_timeout


DEFAULT_PURGE_BATCH_SIZE = 100

Fallback = Callable[[Any], Any]


class CacheClient:
    """Read-through cache for single keys.

    ``try_get`` looks a key up in the store and, on a miss, calls the
    fallback and writes its result back. Failures are recorded in
    ``error_log``; whether they raise or come back as an ``ErrorValue`` is
    governed by ``throw_on_error``. Fallback timeouts always raise.
    """

    def __init__(
        self,
        client: Any = None,
        settings: Optional[CacheSettings] = None,
        *,
        create_client: Callable[[], Any] = create_client,
        events: Optional[LifecycleEvents] = None,
        metrics: Optional[CacheMetrics] = None,
        cache_key_matcher: Union[str, Pattern, None] = None,
        serialize: Callable[[Any], Any] = defaults.serialize,
        deserialize: Callable[[Any], Any] = defaults.deserialize,
        make_timestamp: Callable[[Any, bool], Any] = defaults.make_timestamp,
        key_serializer: Callable[[Any], str] = key_serializer,
        key_hash_function: Callable[[str], str] = key_hash_function,
        **overrides: Any,
    ):
        if settings is None:
            settings = CacheSettings(**overrides)
        elif overrides:
            settings = CacheSettings(**{**settings.model_dump(), **overrides})

        self.settings = settings
        self.logger = get_logger("cache.client")
        self.metrics = metrics
        self.events = events or LifecycleEvents()
        self.error_log = ErrorLog(settings.error_log_size)

        self.default_ttl = settings.default_ttl
        self.ttl_in_seconds = settings.ttl_in_seconds
        self.try_get_options = dict(settings.try_get_options)

        self.serialize = serialize
        self.deserialize = deserialize
        self.make_timestamp = make_timestamp

        self.codec = KeyCodec(
            prefix=settings.cache_key_prefix,
            matcher=cache_key_matcher if cache_key_matcher is not None else settings.cache_key_matcher,
            hash_keys=settings.hash_keys,
            hash_uuids=settings.hash_uuids,
            serializer=key_serializer,
            hash_function=key_hash_function,
        )

        self.client = client if client is not None else create_client()

    @property
    def last_error(self) -> Optional[BaseException]:
        return self.error_log.last_error

    @property
    def errors(self) -> List[BaseException]:
        return self.error_log.errors

    @property
    def time_unit(self) -> str:
        """Name of the SET expiry argument: ``ex`` (seconds) or ``px`` (ms)."""
        return "ex" if self.ttl_in_seconds else "px"

    def _expiry(self, ttl: Optional[int]) -> Dict[str, int]:
        if ttl is None:
            ttl = self.default_ttl
        return {self.time_unit: ttl}

    # Keys

    def hash_key(self, key: Any) -> Any:
        """Format ``key`` as a store key.

        Structured keys are serialized first; strings are hashed and
        appended to the key prefix, e.g. ``cache:1239ecd04b073b8f4615d4077be5e263``.
        Keys that already have the canonical shape are left untouched.
        """
        return self.codec.normalize(key)

    def is_hash_key(self, key: Any) -> bool:
        return self.codec.is_canonical(key)

    def should_query_cache(self, key: str, options: TryGetOptions) -> bool:
        return resolve_cache_query(options)(key)

    # Errors

    def handle_error(self, error: BaseException, label: str, kind: ErrorKind = ErrorKind.STORE):
        """Record a handled failure."""
        self.logger.error(label, error=str(error), error_type=type(error).__name__, kind=kind.value)
        self.error_log.record(kind, label, error)
        if self.metrics:
            self.metrics.record_error(kind.value)

    def _merge_options(self, options: OptionsLike, overrides: Dict[str, Any]) -> TryGetOptions:
        options = merge_options({"ttl": self.default_ttl}, self.try_get_options, options, **overrides)
        # Invalid timeouts raise before the store or fallback is touched
        if options.timeout is not None and not validate_timeout(options.timeout):
            raise TypeError(f"Invalid fallback timeout: {options.timeout!r}")
        return options

    # Store access

    @staticmethod
    def _decode(value: Any, buffer: bool) -> Any:
        if value is None:
            return None
        if buffer:
            return value.encode("utf-8") if isinstance(value, str) else value
        if isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8")
        return value

    async def get(self, key: Any, default: Any = None, *, deserialize: Any = True, buffer: bool = False) -> Any:
        """Retrieve ``key`` from the store.

        ``deserialize`` is either a flag (use the default deserializer) or a
        function. ``buffer`` returns the stored bytes undecoded.
        """
        key = self.hash_key(key)
        value = self._decode(await self.client.get(key), buffer)
        if not value:
            return default

        deserializer = resolve_deserializer(deserialize, self.deserialize)
        if deserializer is None:
            return value
        return deserializer(value)

    async def set(self, key: Any, value: Any, ttl: Optional[int] = None, *, serialize: Optional[Callable[[Any], Any]] = None) -> Any:
        """Store ``value`` under ``key`` for ``ttl`` (default ``default_ttl``)."""
        key = self.hash_key(key)
        if not isinstance(value, (str, bytes)):
            value = (serialize or self.serialize)(value)
        return await self.client.set(key, value, **self._expiry(ttl))

    async def delete(self, key: Any) -> Any:
        key = self.hash_key(key)
        return await self.client.delete(key)

    # Cache-aside

    def with_timeout(self, operation: Awaitable[Any], timeout: Any, error: Optional[BaseException] = None) -> Deadline:
        return with_timeout(operation, timeout, error)

    async def _run_fallback(self, fallback: Fallback, argument: Any, options: TryGetOptions, mode: str) -> Any:
        async def invoke():
            result = fallback(argument)
            if inspect.isawaitable(result):
                result = await result
            return result

        timer = self.metrics.time_fallback(mode) if self.metrics else nullcontext()
        with timer:
            if options.timeout is not None:
                return await self.with_timeout(
                    invoke(),
                    options.timeout,
                    CacheTimeoutError("Fallback function timeout", details={"timeout": options.timeout})
                )
            return await invoke()

    def _fallback_failed(self, error: BaseException, label: str, options: TryGetOptions) -> ErrorValue:
        """Record a fallback failure; raise unless it may be returned."""
        timed_out = is_timeout_error(error)
        self.handle_error(error, label, ErrorKind.TIMEOUT if timed_out else ErrorKind.FALLBACK)
        if timed_out:
            self.logger.warning("Fallback timed out", timeout=options.timeout)
        if timed_out or options.throw_on_error:
            raise error
        return ErrorValue(error)

    async def try_get(self, key: Any, fallback: Fallback, options: OptionsLike = None, **overrides: Any) -> Any:
        """Get the value cached for ``key``, computing it with ``fallback`` on a miss.

        Options merge in order: defaults, ``try_get_options``, ``options``,
        keyword overrides. ``fallback`` receives the raw key and may return
        a value or an awaitable.
        """
        options = self._merge_options(options, overrides)
        raw_key = key
        key = self.hash_key(key)

        self.logger.debug("Try to fetch key", key=key)

        if self.should_query_cache(key, options):
            value = None
            try:
                value = await self.get(key, None, deserialize=options.deserialize, buffer=options.buffer)
            except Exception as e:
                self.handle_error(e, "Cache get error", ErrorKind.STORE)
                if options.throw_on_error:
                    raise

            if value:
                self.logger.debug("Cache hit", key=key)
                if self.metrics:
                    self.metrics.record_hits()
                return value

        if self.metrics:
            self.metrics.record_misses()

        try:
            self.logger.debug("Calling fallback", key=key)
            value = await self._run_fallback(fallback, raw_key, options, "single")
        except Exception as e:
            return self._fallback_failed(e, "Cache try fallback error", options)

        value = self.make_timestamp(value, options.add_timestamp)

        if value is None:
            return value

        try:
            await self.set(key, value, options.ttl, serialize=options.serialize)
        except Exception as e:
            self.handle_error(e, "Cache try set error", ErrorKind.STORE)
            if options.throw_on_error:
                raise
            return ErrorValue(e)

        return value

    # Maintenance

    def _purge_pattern(self, match: Optional[str]) -> str:
        if not match:
            return f"{self.codec.prefix}*"
        # A bare prefix would only match a key literally named after it
        if match in (DEFAULT_CACHE_KEY_PREFIX, self.codec.prefix):
            return f"{match}*"
        return match

    async def _delete_keys(self, keys: List[Any]) -> int:
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(*keys)
            await pipe.execute()
        return len(keys)

    async def purge_keys(self, match: Optional[str] = None, count: int = DEFAULT_PURGE_BATCH_SIZE) -> Dict[str, Any]:
        """Delete every key matching ``match`` (default ``<prefix>*``).

        Keys are scanned ``count`` at a time and removed in transactional
        batches of the same size.
        """
        match = self._purge_pattern(match)
        total = 0
        pending: List[Any] = []

        try:
            async for key in self.client.scan_iter(match=match, count=count):
                pending.append(key)
                if len(pending) >= count:
                    total += await self._delete_keys(pending)
                    pending = []
            if pending:
                total += await self._delete_keys(pending)
        except Exception as e:
            self.handle_error(e, "Purge keys error", ErrorKind.STORE)
            raise

        self.logger.info("Purged keys", match=match, total=total)
        return {"match": match, "total": total}

    # Connection lifecycle

    async def test_connection(self, timeout: Optional[int] = None) -> Any:
        """Ping the store, failing with ``ConnectionTimeoutError`` past ``timeout`` ms."""
        timeout = timeout or self.settings.client_connection_timeout
        try:
            return await self.with_timeout(
                self.client.ping(),
                timeout,
                ConnectionTimeoutError(f"Connection timed out after {timeout} milliseconds", {"timeout": timeout})
            )
        except Exception as e:
            self.handle_error(e, "Connection test error", ErrorKind.CONNECTION)
            raise

    async def start(self):
        """Check connectivity and announce the connection."""
        try:
            await self.test_connection()
        except Exception as e:
            await self.events.emit("error", e)
            raise

        self.logger.info("New store connection")
        await self.events.emit("connect", self.client)
        self.logger.info("Store ready")
        await self.events.emit("ready", self.client)

    async def stop(self):
        await self.client.aclose()
        self.logger.info("Store connection closed")
        await self.events.emit("close", self.client)

    async def reconnect(self):
        self.logger.info("Reconnecting to store")
        await self.events.emit("reconnecting", self.client)
        pool = getattr(self.client, "connection_pool", None)
        if pool is not None:
            await pool.disconnect()
        await self.start()

    async def health_check(self) -> bool:
        """Check store health."""
        try:
            await self.client.ping()
            return True
        except Exception as e:
            self.logger.warning("Store health check failed", error=str(e))
            return False
