"""Transaction manager for the SQLite store.

The connection runs in autocommit mode; this manager opens an explicit
transaction on the first mutation and keeps it open until commit.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import sqlite3

logger = logging.getLogger(__name__)


class TransactionManager:
    """Transaction management for store mutations."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize transaction manager.

        Args:
            conn: SQLite database connection (isolation_level=None)
        """
        self.conn = conn

    @property
    def active(self) -> bool:
        """Whether a transaction is open on the connection."""
        return self.conn.in_transaction

    def begin(self) -> None:
        """Begin a transaction unless one is already open."""
        if not self.active:
            self.conn.execute("BEGIN")

    def commit(self) -> None:
        """Commit the current transaction, if any."""
        if self.active:
            self.conn.execute("COMMIT")

    def rollback(self) -> None:
        """Rollback the current transaction, if any."""
        if self.active:
            self.conn.execute("ROLLBACK")
            logger.debug("Rolled back pending store mutations")

