"""
Shared error handling for the cache-aside client.
"""

from typing import Dict, Any, Optional, Union
from pydantic import BaseModel


TIMEOUT_ERROR_CODE = 408


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: Union[int, str]
    message: str
    details: Dict[str, Any] = {}


class CacheClientError(Exception):
    """Base exception for the cache client."""

    def __init__(self, message: str, code: Union[int, str, None] = None, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code if self.code is not None else "CACHE_CLIENT_ERROR",
            message=self.message,
            details=self.details
        )


class ValidationError(CacheClientError):
    """Bad arguments handed to a cache operation."""

    def __init__(self, message: str = "Argument error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class CacheTimeoutError(CacheClientError):
    """An operation did not settle before its deadline."""

    def __init__(self, message: str = "Operation timed out", code: int = TIMEOUT_ERROR_CODE, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code, details)


class ConnectionTimeoutError(CacheClientError):
    """The store liveness probe exceeded its deadline."""

    def __init__(self, message: str = "Connection timed out", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONNECTION_TIMEOUT", details)


def is_timeout_error(error: BaseException) -> bool:
    """Timeouts are recognised by code so foreign errors carrying 408 count too."""
    return getattr(error, "code", None) == TIMEOUT_ERROR_CODE
