"""
Default value codecs and record stamping.
"""

import json
import time
from typing import Any, MutableMapping


TIMESTAMP_FIELD = "cached_on"
# Used when a record already carries TIMESTAMP_FIELD
SECONDARY_TIMESTAMP_FIELD = "_cached_on"


def serialize(obj: Any) -> str:
    return json.dumps(obj)


def deserialize(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    return json.loads(value)


def make_timestamp(value: Any, add_timestamp: bool) -> Any:
    """Mark when the real value was last fetched.

    Only mappings are stamped. The primary field is never overwritten: a
    record that already has it (e.g. a legacy record being refreshed) gets
    the secondary field instead.
    """
    if not add_timestamp or not isinstance(value, MutableMapping):
        return value

    now = int(time.time() * 1000)
    if TIMESTAMP_FIELD not in value:
        value[TIMESTAMP_FIELD] = now
    else:
        value[SECONDARY_TIMESTAMP_FIELD] = now
    return value
