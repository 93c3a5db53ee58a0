"""Query operations for the SQLite store.

This module provides predicate-filtered reads of cache entries.
"""

from __future__ import annotations

import logging

from shelfcache.services.cache_models import CacheEntry, EntryPredicate
from shelfcache.services.sqlite_store.operations.base import BaseOperation

logger = logging.getLogger(__name__)


class QueryOperations(BaseOperation):
    """Query operations for entry retrieval."""

    def fetch(self, predicate: EntryPredicate) -> list[CacheEntry]:
        """Return all entries matching a predicate, oldest row first.

        Args:
            predicate: Selection over cache, key, version and date

        Returns:
            Matching entries (possibly empty)
        """
        conn = self._validate_connection()
        where, params = predicate.where_clause()

        sql = f"SELECT {self.columns} FROM {self.table} WHERE {where} ORDER BY id"  # noqa: S608
        cursor = conn.execute(sql, params)
        return [CacheEntry.from_row(row) for row in cursor.fetchall()]

    def count(self, predicate: EntryPredicate) -> int:
        """Return the number of entries matching a predicate."""
        conn = self._validate_connection()
        where, params = predicate.where_clause()

        cursor = conn.execute(f"SELECT COUNT(*) FROM {self.table} WHERE {where}", params)  # noqa: S608
        return int(cursor.fetchone()[0])

    def count_by_cache(self) -> dict[str, int]:
        """Return the number of entries per cache namespace."""
        conn = self._validate_connection()
        cursor = conn.execute(
            f"SELECT cache, COUNT(*) FROM {self.table} GROUP BY cache ORDER BY cache"  # noqa: S608
        )
        return {cache: count for cache, count in cursor.fetchall()}
