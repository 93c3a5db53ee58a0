"""Insert operations for the SQLite store.

This module provides the insert-or-update path for cache entries.
"""

from __future__ import annotations

import logging

from shelfcache.services.cache_models import CacheEntry, format_timestamp
from shelfcache.services.sqlite_store.operations.base import BaseOperation
from shelfcache.shared.constants import LogPreview

logger = logging.getLogger(__name__)


class InsertOperations(BaseOperation):
    """Insert operations for entry storage."""

    def upsert(self, entry: CacheEntry) -> CacheEntry:
        """Insert an entry, or update the existing one with the same (cache, key).

        Args:
            entry: Entry to store

        Returns:
            The same entry with its row id filled in
        """
        conn = self._validate_connection()

        upsert_sql = f"""
        INSERT INTO {self.table} (cache, cache_version, key, value, date)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT (cache, key) DO UPDATE SET
            cache_version = excluded.cache_version,
            value = excluded.value,
            date = excluded.date
        """  # noqa: S608
        conn.execute(
            upsert_sql,
            (
                entry.cache,
                entry.cache_version,
                entry.key,
                entry.value,
                format_timestamp(entry.date),
            ),
        )

        cursor = conn.execute(
            f"SELECT id FROM {self.table} WHERE cache = ? AND key = ?",  # noqa: S608
            (entry.cache, entry.key),
        )
        entry.id = cursor.fetchone()[0]

        logger.debug(
            "Entry stored: cache=%s, key=%s, size=%d bytes",
            entry.cache,
            entry.key[: LogPreview.KEY_PREVIEW_LENGTH],
            len(entry.value.encode("utf-8")),
        )
        return entry
