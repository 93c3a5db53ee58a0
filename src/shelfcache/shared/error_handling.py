"""Shared error handling utilities for shelfcache.

Converts raw exceptions coming out of sqlite3, the codec or the file
system into the structured ShelfCacheError hierarchy.
"""

from __future__ import annotations

import sqlite3

from shelfcache.shared.errors import (
    DomainError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    PersistenceError,
    ShelfCacheError,
)


def map_exception_to_cache_error(
    error: BaseException,
    operation: str,
    cache_name: str | None = None,
) -> ShelfCacheError:
    """Map a generic exception to a ShelfCacheError.

    Args:
        error: The exception to map
        operation: Operation name where error occurred
        cache_name: Cache namespace involved, if any

    Returns:
        ShelfCacheError instance

    Example:
        >>> try:
        ...     conn.execute("SELECT 1")
        ... except sqlite3.ProgrammingError as e:
        ...     error = map_exception_to_cache_error(e, "fetch")
        ...     # Returns PersistenceError with CACHE_READ_FAILED code
    """
    if isinstance(error, ShelfCacheError):
        return error

    context = ErrorContext(
        operation=operation,
        cache_name=cache_name,
        additional_data={"original_error_type": type(error).__name__},
    )

    if isinstance(error, sqlite3.Error):
        return PersistenceError(
            f"Storage engine error: {error}",
            ErrorCode.CACHE_READ_FAILED,
            context,
            error,
        )

    if isinstance(error, OSError):
        return InfrastructureError(
            f"File system error: {error}",
            ErrorCode.FILE_NOT_FOUND if isinstance(error, FileNotFoundError) else ErrorCode.PERMISSION_DENIED,
            context,
            error,
        )

    if isinstance(error, (ValueError, KeyError, TypeError)):
        return DomainError(
            f"Data processing error: {error}",
            ErrorCode.DATA_PROCESSING_ERROR,
            context,
            error,
        )

    return InfrastructureError(
        f"Unexpected error: {error}",
        ErrorCode.INFRASTRUCTURE_ERROR,
        context,
        error,
    )
