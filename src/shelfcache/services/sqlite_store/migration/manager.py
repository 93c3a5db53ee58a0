"""Migration manager for the SQLite store.

This module creates the schema and checks that an existing file was
written with a schema this package understands.
"""

from __future__ import annotations

import logging
import sqlite3

from shelfcache.shared.constants import StoreSchema
from shelfcache.shared.errors import ErrorCode, ErrorContext, StoreOpenError

logger = logging.getLogger(__name__)


class MigrationManager:
    """Database schema manager."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize migration manager.

        Args:
            conn: SQLite database connection
        """
        self.conn = conn
        self._current_version = self._get_current_version()

    def get_current_version(self) -> int:
        """Get current schema version.

        Returns:
            Current schema version number
        """
        return self._current_version

    def _table_exists(self, table: str) -> bool:
        cursor = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table,),
        )
        return cursor.fetchone() is not None

    def _get_current_version(self) -> int:
        """Get current schema version from database.

        Returns:
            Current schema version (0 if not set)
        """
        if not self._table_exists(StoreSchema.VERSION_TABLE):
            return 0

        cursor = self.conn.execute(f"SELECT MAX(version) FROM {StoreSchema.VERSION_TABLE}")  # noqa: S608
        row = cursor.fetchone()
        return row[0] if row and row[0] is not None else 0

    def create_tables(self) -> None:
        """Create database schema (v1).

        Raises:
            StoreOpenError: If the file holds a schema from another version
        """
        self.validate_schema()

        schema_sql = f"""
        CREATE TABLE IF NOT EXISTS {StoreSchema.TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            cache TEXT NOT NULL,
            cache_version TEXT NOT NULL,
            key TEXT NOT NULL,
            value TEXT NOT NULL,
            date TEXT NOT NULL,

            CHECK (length(cache) > 0)
        );

        CREATE UNIQUE INDEX IF NOT EXISTS {StoreSchema.INDEX_CACHE_KEY}
            ON {StoreSchema.TABLE}(cache, key);

        CREATE TABLE IF NOT EXISTS {StoreSchema.VERSION_TABLE} (
            version INTEGER PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL
        );
        """

        self.conn.executescript(schema_sql)

        if self._current_version < StoreSchema.VERSION:
            self.conn.execute(
                f"INSERT OR REPLACE INTO {StoreSchema.VERSION_TABLE} (version) VALUES (?)",  # noqa: S608
                (StoreSchema.VERSION,),
            )
            logger.info("Created database schema (v%d)", StoreSchema.VERSION)
        self._current_version = StoreSchema.VERSION

    def validate_schema(self) -> None:
        """Check that an existing schema is one this package can use.

        A missing table is fine (it will be created). A newer schema
        version, or an entry table whose columns differ, is not.

        Raises:
            StoreOpenError: With code SCHEMA_INCOMPATIBLE
        """
        if self._current_version > StoreSchema.VERSION:
            self._raise_incompatible(f"schema version {self._current_version} is newer than {StoreSchema.VERSION}")

        if not self._table_exists(StoreSchema.TABLE):
            return

        cursor = self.conn.execute(f"PRAGMA table_info({StoreSchema.TABLE})")
        columns = tuple(row[1] for row in cursor.fetchall())
        if columns != StoreSchema.COLUMNS:
            self._raise_incompatible(f"unexpected columns {columns}")

    def _raise_incompatible(self, reason: str) -> None:
        logger.error("Incompatible store schema: %s", reason)
        raise StoreOpenError(
            f"Incompatible store schema: {reason}",
            ErrorCode.SCHEMA_INCOMPATIBLE,
            ErrorContext(operation="validate_schema"),
        )

