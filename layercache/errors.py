"""
layercache - Core Error Types

Defines the exception hierarchy for the layered cache.
All exceptions inherit from LayerCacheError for consistent error handling.

Propagation rules:
- ConfigurationError, InvalidKeyError, InvalidTTLError and UnknownLayerError
  always reach the caller.
- BackendFault (and ValueEncodingError) never leave a backend; they are
  absorbed at the backend boundary and reported as False / default.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for structured error responses."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INVALID_KEY = "INVALID_KEY"
    INVALID_TTL = "INVALID_TTL"
    UNKNOWN_LAYER = "UNKNOWN_LAYER"
    NO_NAMED_LAYERS = "NO_NAMED_LAYERS"
    BACKEND_FAULT = "BACKEND_FAULT"
    ENCODING_FAILURE = "ENCODING_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class LayerCacheError(Exception):
    """Base exception for all layercache errors."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging and responses."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(LayerCacheError):
    """Raised when configuration is invalid or missing."""

    error_code = ErrorCode.CONFIGURATION_ERROR


class InvalidKeyError(LayerCacheError):
    """Raised when a cache key is empty or whitespace-only."""

    error_code = ErrorCode.INVALID_KEY

    def __init__(self, key: Any, details: dict[str, Any] | None = None):
        message = "Key must be a non-empty string."
        error_details = details or {}
        error_details.setdefault("key", repr(key))
        super().__init__(message, error_details)
        self.key = key


class InvalidTTLError(LayerCacheError):
    """Raised when a TTL is neither None, a number of seconds nor a timedelta."""

    error_code = ErrorCode.INVALID_TTL

    def __init__(self, ttl: Any):
        message = f"Unsupported TTL value: {ttl!r} (expected None, seconds or timedelta)"
        super().__init__(message, {"ttl": repr(ttl), "type": type(ttl).__name__})
        self.ttl = ttl


class UnknownLayerError(LayerCacheError):
    """Raised when a named layer is requested that was never registered."""

    error_code = ErrorCode.UNKNOWN_LAYER

    def __init__(self, name: str, available: list[str]):
        message = f"Cache layer '{name}' not found. Available layers: {', '.join(available)}"
        super().__init__(message, {"layer": name, "available": available})
        self.name = name
        self.available = available


class NoNamedLayersError(UnknownLayerError):
    """Raised by layer lookups on a cache built without any named layers."""

    error_code = ErrorCode.NO_NAMED_LAYERS

    def __init__(self, name: str):
        LayerCacheError.__init__(
            self,
            f"Cache layer '{name}' not found: no named layers were configured",
            {"layer": name, "available": []},
        )
        self.name = name
        self.available = []


class BackendFault(LayerCacheError):
    """
    Internal backend failure (connectivity, serialization, storage).

    Never surfaces through the backend contract. Backends catch it (and any
    other exception) and degrade to False / default.
    """

    error_code = ErrorCode.BACKEND_FAULT


class ValueEncodingError(BackendFault):
    """Raised when a value cannot be encoded by any supported format."""

    error_code = ErrorCode.ENCODING_FAILURE

    def __init__(self, value_type: str, reason: str):
        super().__init__(
            f"Cannot encode value of type {value_type}: {reason}",
            {"value_type": value_type, "reason": reason},
        )


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract the appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        ErrorCode of a LayerCacheError, INTERNAL_ERROR for anything else
    """
    if isinstance(error, LayerCacheError):
        return error.error_code
    return ErrorCode.INTERNAL_ERROR
