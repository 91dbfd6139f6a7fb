"""
Shared configuration management for the cache-aside client.
"""

from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CACHE_KEY_PREFIX = "cache:"

_24_HOURS_MS = 24 * 60 * 60 * 1000
_5_SECONDS_MS = 5 * 1000


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )


class RedisSettings(BaseConfig):
    """Connection settings for the backing key/value store."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    url: Optional[str] = None
    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    tls: bool = False

    # Socket level timeouts handed to redis-py, in seconds
    socket_connect_timeout: float = 5.0
    socket_timeout: float = 5.0
    health_check_interval: int = 30


class CacheSettings(BaseConfig):
    """Engine settings: key shape, TTL unit and tryGet defaults."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    hash_keys: bool = True
    hash_uuids: bool = True
    cache_key_prefix: str = DEFAULT_CACHE_KEY_PREFIX
    # Defaults to the prefix followed by an md5 hex digest
    cache_key_matcher: Optional[str] = None

    ttl_in_seconds: bool = False
    # Unit follows ttl_in_seconds: milliseconds by default
    default_ttl: int = _24_HOURS_MS
    client_connection_timeout: int = _5_SECONDS_MS

    log_level: str = "info"
    error_log_size: int = Field(default=100, gt=0)
    try_get_options: Dict[str, Any] = Field(default_factory=dict)
