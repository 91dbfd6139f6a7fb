"""
Per-call options for the cache-aside operations.
"""

from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict


Deserializer = Callable[[Any], Any]
Serializer = Callable[[Any], Any]
CacheMissPredicate = Callable[..., bool]


class TryGetOptions(BaseModel):
    """Options bag for ``try_get``/``try_get_batch``.

    ``deserialize`` and ``force_cache_miss`` accept either a flag or a
    function; see ``resolve_deserializer`` and ``resolve_cache_query``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    ttl: Optional[int] = None
    # Milliseconds allowed for the fallback
    timeout: Optional[float] = None
    deserialize: Union[bool, Deserializer] = True
    serialize: Optional[Serializer] = None
    add_timestamp: bool = False
    throw_on_error: bool = False
    force_cache_miss: Union[bool, CacheMissPredicate] = False
    buffer: bool = False


OptionsLike = Union[TryGetOptions, Mapping[str, Any], None]


def as_dict(options: OptionsLike) -> dict:
    if options is None:
        return {}
    if isinstance(options, TryGetOptions):
        return {name: getattr(options, name) for name in options.model_fields_set}
    return dict(options)


def merge_options(*layers: OptionsLike, **overrides: Any) -> TryGetOptions:
    """Merge option layers; later layers win, keyword overrides win last."""
    merged: dict = {}
    for layer in layers:
        merged.update(as_dict(layer))
    merged.update(overrides)
    return TryGetOptions(**merged)


def resolve_cache_query(options: TryGetOptions) -> Callable[[str], bool]:
    """Resolve ``force_cache_miss`` into a "should query cache" predicate."""
    force_cache_miss = options.force_cache_miss
    if callable(force_cache_miss):
        return lambda key: not force_cache_miss(key, options)
    skip = force_cache_miss is True
    return lambda key: not skip


def resolve_deserializer(deserialize: Union[bool, Deserializer], default: Deserializer) -> Optional[Deserializer]:
    """Resolve ``deserialize`` into a function, or ``None`` for raw values."""
    if callable(deserialize):
        return deserialize
    if deserialize:
        return default
    return None
