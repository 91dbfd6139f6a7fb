"""
Error bookkeeping for cache engines.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, List, Optional


class ErrorKind(Enum):
    """Where a handled failure came from."""
    VALIDATION = "validation"
    STORE = "store"
    FALLBACK = "fallback"
    TIMEOUT = "timeout"
    CONNECTION = "connection"


@dataclass(frozen=True)
class ErrorRecord:
    kind: ErrorKind
    label: str
    error: BaseException
    at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ErrorValue:
    """Returned in place of a value when ``throw_on_error`` is off."""
    error: BaseException


def is_error_value(value: Any) -> bool:
    return isinstance(value, ErrorValue)


class ErrorLog:
    """Bounded log of handled failures, newest last."""

    def __init__(self, max_size: int = 100):
        self._records: Deque[ErrorRecord] = deque(maxlen=max_size)
        self.last_error: Optional[BaseException] = None

    def record(self, kind: ErrorKind, label: str, error: BaseException) -> ErrorRecord:
        entry = ErrorRecord(kind=kind, label=label, error=error)
        self._records.append(entry)
        self.last_error = error
        return entry

    @property
    def records(self) -> List[ErrorRecord]:
        return list(self._records)

    @property
    def errors(self) -> List[BaseException]:
        return [entry.error for entry in self._records]

    def clear(self):
        self._records.clear()
        self.last_error = None

    def __len__(self) -> int:
        return len(self._records)
