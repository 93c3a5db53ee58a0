"""Delete operations for the SQLite store.

This module provides single-entry and predicate-filtered deletes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shelfcache.services.sqlite_store.operations.base import BaseOperation

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shelfcache.services.cache_models import CacheEntry, EntryPredicate

logger = logging.getLogger(__name__)


class UpdateOperations(BaseOperation):
    """Delete operations for store maintenance."""

    def delete(self, entries: Iterable[CacheEntry]) -> int:
        """Delete the given entries.

        Entries with a row id are deleted by id, others by (cache, key).

        Returns:
            Number of deleted rows
        """
        conn = self._validate_connection()

        deleted = 0
        for entry in entries:
            if entry.id is not None:
                cursor = conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (entry.id,))  # noqa: S608
            else:
                cursor = conn.execute(
                    f"DELETE FROM {self.table} WHERE cache = ? AND key = ?",  # noqa: S608
                    (entry.cache, entry.key),
                )
            deleted += cursor.rowcount

        return deleted

    def bulk_delete(self, predicate: EntryPredicate) -> int:
        """Delete every entry matching a predicate in one statement.

        Returns:
            Number of deleted rows
        """
        conn = self._validate_connection()
        where, params = predicate.where_clause()

        cursor = conn.execute(f"DELETE FROM {self.table} WHERE {where}", params)  # noqa: S608
        deleted_count = cursor.rowcount

        if deleted_count > 0:
            logger.debug("Bulk deleted %d entries (%s)", deleted_count, where)

        return deleted_count
