"""Base operation class for SQLite store operations.

This module provides shared functionality for all store operations.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shelfcache.shared.constants import StoreSchema
from shelfcache.shared.errors import ErrorCode, ErrorContext, PersistenceError

if TYPE_CHECKING:
    import sqlite3

logger = logging.getLogger(__name__)


class BaseOperation:
    """Base class for store operations with shared functionality."""

    table = StoreSchema.TABLE
    columns = ", ".join(StoreSchema.COLUMNS)

    def __init__(self, conn: sqlite3.Connection | None) -> None:
        """Initialize base operation.

        Args:
            conn: SQLite database connection
        """
        self.conn = conn

    def _validate_connection(self) -> sqlite3.Connection:
        """Validate database connection is available.

        Raises:
            PersistenceError: If connection is not initialized
        """
        if self.conn is None:
            raise PersistenceError(
                "Database connection not initialized",
                ErrorCode.STORE_CLOSED,
                ErrorContext(operation=type(self).__name__),
            )
        return self.conn
