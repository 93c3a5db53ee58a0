"""shelfcache Error Handling Module

This module defines the error hierarchy for shelfcache, providing
structured error classes with context information.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Proper Exception Chaining: Original exceptions are preserved
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]


class ErrorCode(str, Enum):
    """Error codes for shelfcache.

    This enum serves as the single source of truth for all error codes
    used throughout the package.
    """

    # Store Errors
    STORE_OPEN_FAILED = "STORE_OPEN_FAILED"
    STORE_RESET_FAILED = "STORE_RESET_FAILED"
    STORE_CLOSED = "STORE_CLOSED"
    SCHEMA_INCOMPATIBLE = "SCHEMA_INCOMPATIBLE"

    # Cache Errors
    CACHE_READ_FAILED = "CACHE_READ_FAILED"
    CACHE_WRITE_FAILED = "CACHE_WRITE_FAILED"
    CACHE_SERIALIZATION_ERROR = "CACHE_SERIALIZATION_ERROR"
    CACHE_DESERIALIZATION_ERROR = "CACHE_DESERIALIZATION_ERROR"

    # Ownership Errors
    CONFINEMENT_VIOLATION = "CONFINEMENT_VIOLATION"

    # Configuration Errors
    CONFIG_INVALID = "CONFIG_INVALID"

    # File System Errors
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Fallbacks
    DATA_PROCESSING_ERROR = "DATA_PROCESSING_ERROR"
    INFRASTRUCTURE_ERROR = "INFRASTRUCTURE_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContext:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are allowed in
    additional_data so the context can always be logged as JSON.

    Attributes:
        file_path: Optional file path associated with the error
        operation: Optional operation name that caused the error
        cache_name: Optional cache namespace involved in the error
        additional_data: Optional dict with primitive values only
    """

    file_path: str | None = None
    operation: str | None = None
    cache_name: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        """Post-initialization coercion of additional_data."""
        if self.additional_data is not None:
            coerced = _coerce_primitives(self.additional_data)
            # frozen dataclass: bypass __setattr__
            object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self) -> dict[str, Any]:
        """Export context as dict for logging.

        Returns:
            Dictionary without None fields and a guaranteed additional_data key.

        Example:
            >>> ErrorContext(operation="get", cache_name="users").safe_dict()
            {'operation': 'get', 'cache_name': 'users', 'additional_data': {}}
        """
        data: dict[str, Any] = {}
        if self.file_path is not None:
            data["file_path"] = self.file_path
        if self.operation is not None:
            data["operation"] = self.operation
        if self.cache_name is not None:
            data["cache_name"] = self.cache_name
        data["additional_data"] = dict(self.additional_data or {})
        return data


class ShelfCacheError(Exception):
    """Base exception class for all shelfcache errors."""

    default_code: ErrorCode = ErrorCode.INFRASTRUCTURE_ERROR

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        """Initialize ShelfCacheError.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum (class default if omitted)
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code or self.default_code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error
        super().__init__(f"{self.code.value}: {message}")

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class InfrastructureError(ShelfCacheError):
    """Errors raised while talking to the storage engine or file system."""


class DomainError(ShelfCacheError):
    """Errors raised when cached data cannot be represented."""

    default_code = ErrorCode.DATA_PROCESSING_ERROR


class ApplicationError(ShelfCacheError):
    """Errors caused by the way the host application uses the cache.

    Examples:
    - Calling a cache from a thread that does not own it
    - Invalid configuration values
    """

    default_code = ErrorCode.CONFIG_INVALID


class StoreOpenError(InfrastructureError):
    """The durable store could not be opened, even after a reset."""

    default_code = ErrorCode.STORE_OPEN_FAILED


class PersistenceError(InfrastructureError):
    """A query or commit was rejected by the storage engine."""

    default_code = ErrorCode.CACHE_WRITE_FAILED


class EncodingError(DomainError):
    """A key or value could not be serialized."""

    default_code = ErrorCode.CACHE_SERIALIZATION_ERROR


class DecodingError(DomainError):
    """A stored value could not be deserialized into the requested type."""

    default_code = ErrorCode.CACHE_DESERIALIZATION_ERROR


class ConfinementViolation(ApplicationError):
    """A cache was used from a thread other than its owner."""

    default_code = ErrorCode.CONFINEMENT_VIOLATION


def create_persistence_error(
    message: str,
    operation: str,
    db_path: str | Path | None = None,
    original_error: BaseException | None = None,
    code: ErrorCode = ErrorCode.CACHE_WRITE_FAILED,
) -> PersistenceError:
    """Create a persistence error with context."""
    context = ErrorContext(
        file_path=str(db_path) if db_path is not None else None,
        operation=operation,
    )
    return PersistenceError(message, code, context, original_error)


def create_config_error(
    message: str,
    config_key: str | None = None,
    operation: str | None = None,
    original_error: BaseException | None = None,
) -> ApplicationError:
    """Create a configuration error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"config_key": config_key} if config_key else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return ApplicationError(
        message,
        ErrorCode.CONFIG_INVALID,
        context,
        original_error,
    )
