"""
Store client construction.
"""

from typing import Any, Callable, Optional
from urllib.parse import quote

import redis.asyncio as redis

from shared.config import CacheSettings, RedisSettings
from shared.logging import configure_logging, get_logger


logger = get_logger("cache.factory")


def build_url(settings: RedisSettings) -> str:
    """Store URL from settings; an explicit ``url`` wins."""
    if settings.url:
        return settings.url

    protocol = "rediss" if settings.tls else "redis"
    query = f"?password={quote(settings.password, safe='')}" if settings.password else ""
    return f"{protocol}://{settings.host}:{settings.port}{query}"


def default_redis_factory(url: str, settings: Optional[RedisSettings] = None) -> redis.Redis:
    settings = settings or RedisSettings()
    return redis.from_url(
        url,
        decode_responses=False,
        socket_connect_timeout=settings.socket_connect_timeout,
        socket_timeout=settings.socket_timeout,
        retry_on_timeout=True,
        health_check_interval=settings.health_check_interval
    )


def create_client(settings: Optional[RedisSettings] = None, redis_factory: Optional[Callable[[str], Any]] = None) -> Any:
    """Create a new store client from ``settings`` (default: ``REDIS_*`` env)."""
    settings = settings or RedisSettings()
    url = build_url(settings)
    logger.debug("Creating store client", tls=settings.tls, host=settings.host, port=settings.port)
    if redis_factory is not None:
        return redis_factory(url)
    return default_redis_factory(url, settings)


def create_cache(
    cache_settings: Optional[CacheSettings] = None,
    redis_settings: Optional[RedisSettings] = None,
    *,
    batch: bool = True,
    service_name: Optional[str] = None,
    **kwargs: Any,
):
    """Build a cache engine wired to a store client from settings.

    When ``service_name`` is given, structured logging is configured at
    ``cache_settings.log_level`` first.
    """
    # Engines import this module for their default client factory
    from .batch import BatchCacheClient
    from .client import CacheClient

    cache_settings = cache_settings or CacheSettings()
    if service_name:
        configure_logging(service_name, cache_settings.log_level)

    cache_class = BatchCacheClient if batch else CacheClient
    client = kwargs.pop("client", None)
    if client is None:
        client = create_client(redis_settings)
    return cache_class(client, cache_settings, **kwargs)
