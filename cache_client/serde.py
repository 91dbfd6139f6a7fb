"""
Compressed JSON codecs, for use with the ``buffer`` option.
"""

import gzip
import json
from typing import Any


def serialize_object(src: Any) -> bytes:
    return gzip.compress(json.dumps(src).encode("utf-8"))


def deserialize_object(data: bytes) -> Any:
    return json.loads(gzip.decompress(data).decode("utf-8"))
