"""
Cache-aside client for Redis-like key/value stores.
"""

from shared.errors import (
    CacheClientError,
    CacheTimeoutError,
    ConnectionTimeoutError,
    ValidationError,
)

from .batch import BatchCacheClient
from .client import CacheClient
from .data import ManagedSet
from .errors_log import ErrorKind, ErrorLog, ErrorRecord, ErrorValue, is_error_value
from .events import LifecycleEvents
from .factory import create_cache, create_client
from .keys import UUID_CACHE_MATCHER, KeyCodec, has_uuid_format, uuid_key_matcher
from .options import TryGetOptions
from .timeout import with_timeout, validate_timeout

__all__ = [
    "BatchCacheClient",
    "CacheClient",
    "CacheClientError",
    "CacheTimeoutError",
    "ConnectionTimeoutError",
    "ErrorKind",
    "ErrorLog",
    "ErrorRecord",
    "ErrorValue",
    "KeyCodec",
    "LifecycleEvents",
    "ManagedSet",
    "TryGetOptions",
    "UUID_CACHE_MATCHER",
    "ValidationError",
    "create_cache",
    "create_client",
    "has_uuid_format",
    "is_error_value",
    "uuid_key_matcher",
    "validate_timeout",
    "with_timeout",
]
