"""
Key codec: turns raw keys into canonical store keys.

Canonical keys look like ``cache:1239ecd04b073b8f4615d4077be5e263``: the
configured prefix followed by the md5 digest of the (serialized) raw key.
"""

import hashlib
import json
import re
from typing import Any, Callable, List, Optional, Pattern, Union

from shared.config import DEFAULT_CACHE_KEY_PREFIX
from shared.errors import ValidationError


UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE
)

# RFC4122: version nibble 1-5, variant nibble 8, 9, a or b
STRICT_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE
)

UUID_SUFFIX = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


def hashed_key_matcher(prefix: str = DEFAULT_CACHE_KEY_PREFIX) -> Pattern:
    """Matches ``prefix`` followed by an md5 hex digest."""
    return re.compile(rf"^{re.escape(prefix)}[a-f0-9]{{32}}$", re.IGNORECASE)


def uuid_key_matcher(prefix: str = DEFAULT_CACHE_KEY_PREFIX) -> Pattern:
    """Matches ``prefix`` plus any number of ``segment:`` groups ending in a UUID.

    e.g. ``cache:user:profile:425b01ac-4c45-49ef-b3a0-3fcf64a4d116``
    """
    return re.compile(rf"^{re.escape(prefix)}(?:[\w-]+:)*{UUID_SUFFIX}$", re.IGNORECASE)


UUID_CACHE_MATCHER = uuid_key_matcher()

RawKey = Any
Matcher = Union[str, Pattern]


def key_serializer(obj: Any) -> str:
    """Stringify structured raw keys so equal objects give equal keys."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)


def key_hash_function(key: str) -> str:
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def has_uuid_format(value: Any = "", strict: bool = False) -> bool:
    """Check whether ``value`` looks like a UUID.

    The default check only looks at the 8-4-4-4-12 hex grouping. With
    ``strict`` the version and variant nibbles must also be valid RFC4122.
    """
    if not isinstance(value, str):
        return False
    pattern = STRICT_UUID_PATTERN if strict else UUID_PATTERN
    return pattern.match(value) is not None


def compile_matcher(matcher: Optional[Matcher], prefix: str = DEFAULT_CACHE_KEY_PREFIX) -> Pattern:
    if matcher is None:
        return hashed_key_matcher(prefix)
    if isinstance(matcher, str):
        return re.compile(matcher, re.IGNORECASE)
    return matcher


class KeyCodec:
    """Normalizes raw keys into store keys."""

    def __init__(
        self,
        prefix: str = DEFAULT_CACHE_KEY_PREFIX,
        matcher: Optional[Matcher] = None,
        hash_keys: bool = True,
        hash_uuids: bool = True,
        serializer: Callable[[Any], str] = key_serializer,
        hash_function: Callable[[str], str] = key_hash_function,
    ):
        self.prefix = prefix
        self.matcher = compile_matcher(matcher, prefix)
        self.hash_keys = hash_keys
        self.hash_uuids = hash_uuids
        self.serializer = serializer
        self.hash_function = hash_function

    def _stringify(self, key: RawKey) -> str:
        if isinstance(key, str):
            return key
        return self.serializer(key)

    def normalize(self, key: RawKey) -> Any:
        """Return the canonical store key for ``key``."""
        if not self.hash_keys:
            return key

        key = self._stringify(key)

        if self._is_canonical(key):
            return key

        if not self.hash_uuids and has_uuid_format(key):
            return f"{self.prefix}{key}"

        return f"{self.prefix}{self.hash_function(key)}"

    def is_canonical(self, key: RawKey) -> bool:
        return self._is_canonical(self._stringify(key))

    def _is_canonical(self, key: str) -> bool:
        if self.matcher.search(key) is not None:
            return True
        # Unhashed UUID keys must survive re-normalization whatever the matcher
        if not self.hash_uuids and key.startswith(self.prefix):
            return has_uuid_format(key[len(self.prefix):])
        return False

    def normalize_batch(self, keys: List[RawKey]) -> List[Any]:
        if not isinstance(keys, (list, tuple)):
            raise ValidationError("Argument error: keys must be a list", {"type": type(keys).__name__})
        return [self.normalize(key) for key in keys]

    def are_canonical(self, keys: List[RawKey]) -> List[bool]:
        if not isinstance(keys, (list, tuple)):
            raise ValidationError("Argument error: keys must be a list", {"type": type(keys).__name__})
        return [self.is_canonical(key) for key in keys]
