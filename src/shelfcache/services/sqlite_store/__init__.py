"""SQLite entry store with modular operations.

This module provides the durable store used by the cache manager, with
separated concerns for query, insert, delete, migration, and transaction
handling.
"""

from shelfcache.services.sqlite_store.store import SQLiteEntryStore

__all__ = ["SQLiteEntryStore"]
