"""SQLite store transaction module."""

from shelfcache.services.sqlite_store.transaction.manager import TransactionManager

__all__ = ["TransactionManager"]
