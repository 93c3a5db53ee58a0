"""SQLite store migration module."""

from shelfcache.services.sqlite_store.migration.manager import MigrationManager

__all__ = ["MigrationManager"]
