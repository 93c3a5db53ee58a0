"""SQLite store operations module.

This module provides separate operation classes for querying, inserting,
and deleting cache entries.
"""

from shelfcache.services.sqlite_store.operations.insert import InsertOperations
from shelfcache.services.sqlite_store.operations.query import QueryOperations
from shelfcache.services.sqlite_store.operations.update import UpdateOperations

__all__ = ["InsertOperations", "QueryOperations", "UpdateOperations"]
