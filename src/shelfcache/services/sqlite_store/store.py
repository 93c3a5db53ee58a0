"""SQLite entry store facade.

This module owns the connection to the store file, the schema and the
bulk operations used by the cache manager, and recovers from a store
file that cannot be opened by deleting it and starting over once.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from pathlib import Path

from shelfcache.services.cache_models import CacheEntry, EntryPredicate
from shelfcache.services.sqlite_store.migration.manager import MigrationManager
from shelfcache.services.sqlite_store.operations.insert import InsertOperations
from shelfcache.services.sqlite_store.operations.query import QueryOperations
from shelfcache.services.sqlite_store.operations.update import UpdateOperations
from shelfcache.services.sqlite_store.transaction.manager import TransactionManager
from shelfcache.shared.constants import StoreSchema
from shelfcache.shared.errors import (
    ErrorCode,
    ErrorContext,
    ShelfCacheError,
    StoreOpenError,
    create_persistence_error,
)
from shelfcache.shared.logging import log_operation_error, log_operation_start, log_operation_success

logger = logging.getLogger(__name__)


class SQLiteEntryStore:
    """SQLite-backed durable storage for cache entries.

    Mutations are collected in one pending transaction and made durable
    by :meth:`commit`. Reads on the same store see pending mutations.

    Attributes:
        db_path: Path to SQLite database file
        conn: SQLite database connection (None once closed)

    Example:
        >>> store = SQLiteEntryStore(Path("/tmp/app.sqlite"))
        >>> store.upsert(entry)
        >>> store.commit()
        >>> store.fetch(EntryPredicate.for_cache("users"))
        >>> store.close()
    """

    def __init__(self, db_path: Path | str) -> None:
        """Open (creating if absent) the store file.

        Args:
            db_path: Path to SQLite database file

        Raises:
            StoreOpenError: If the file cannot be opened even after a reset
        """
        self.db_path = Path(db_path)
        self.conn: sqlite3.Connection | None = None
        self.reset_count = 0
        self._open()

    def _open(self) -> None:
        """Open the store, deleting and recreating the file once on failure."""
        log_operation_start(logger, "open_store", {"db_path": str(self.db_path)})
        started = time.perf_counter()
        try:
            self._connect()
        except (sqlite3.Error, OSError, StoreOpenError) as first_error:
            logger.error(
                "Recovering from store error by deleting the cache db %s - Error: %s",
                self.db_path,
                first_error,
            )
            self._discard_connection()
            self._remove_store_files()
            self.reset_count += 1
            try:
                self._connect()
            except (sqlite3.Error, OSError, StoreOpenError) as second_error:
                self._discard_connection()
                error = StoreOpenError(
                    f"Failed to open store after reset: {second_error}",
                    ErrorCode.STORE_OPEN_FAILED,
                    ErrorContext(operation="open_store", file_path=str(self.db_path)),
                    second_error,
                )
                log_operation_error(logger, error, operation="open_store")
                raise error from second_error

        log_operation_success(
            logger=logger,
            operation="open_store",
            duration_ms=(time.perf_counter() - started) * 1000,
            context={"db_path": str(self.db_path), "reset_count": self.reset_count},
        )

    def _connect(self) -> None:
        """Connect and prepare the schema.

        Raises:
            sqlite3.Error: If the file is not a usable database
            OSError: If the directory cannot be created
            StoreOpenError: If the schema is incompatible
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(
            str(self.db_path),
            # Thread ownership is enforced by the cache manager
            check_same_thread=False,
            isolation_level=None,
        )

        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")

        MigrationManager(self.conn).create_tables()

        self._transactions = TransactionManager(self.conn)
        self._query_ops = QueryOperations(self.conn)
        self._insert_ops = InsertOperations(self.conn)
        self._update_ops = UpdateOperations(self.conn)

    def _discard_connection(self) -> None:
        if self.conn is not None:
            try:
                self.conn.close()
            except sqlite3.Error:
                logger.debug("Ignoring error while closing broken connection", exc_info=True)
            self.conn = None

    def _remove_store_files(self) -> None:
        """Delete the store file and its sidecar files.

        Raises:
            StoreOpenError: If a file exists but cannot be removed
        """
        paths = [self.db_path]
        paths.extend(self.db_path.with_name(self.db_path.name + suffix) for suffix in StoreSchema.SIDECAR_SUFFIXES)
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StoreOpenError(
                    f"Failed to delete store file {path}: {e}",
                    ErrorCode.STORE_RESET_FAILED,
                    ErrorContext(operation="reset_store", file_path=str(path)),
                    e,
                ) from e

    @contextmanager
    def _translate_errors(self, operation: str, code: ErrorCode) -> Generator[None, None, None]:
        """Re-raise storage engine errors as PersistenceError."""
        try:
            yield
        except ShelfCacheError:
            raise
        except sqlite3.Error as e:
            raise create_persistence_error(
                f"{operation} failed: {e}",
                operation=operation,
                db_path=self.db_path,
                original_error=e,
                code=code,
            ) from e

    def fetch(self, predicate: EntryPredicate) -> list[CacheEntry]:
        """Return all entries matching a predicate.

        Raises:
            PersistenceError: If the query fails
        """
        with self._translate_errors("fetch", ErrorCode.CACHE_READ_FAILED):
            return self._query_ops.fetch(predicate)

    def count(self, predicate: EntryPredicate | None = None) -> int:
        """Return the number of entries matching a predicate (all if None).

        Raises:
            PersistenceError: If the query fails
        """
        with self._translate_errors("count", ErrorCode.CACHE_READ_FAILED):
            return self._query_ops.count(predicate or EntryPredicate.everything())

    def count_by_cache(self) -> dict[str, int]:
        """Return entry counts per cache namespace.

        Raises:
            PersistenceError: If the query fails
        """
        with self._translate_errors("count_by_cache", ErrorCode.CACHE_READ_FAILED):
            return self._query_ops.count_by_cache()

    def upsert(self, entry: CacheEntry) -> CacheEntry:
        """Insert or update an entry (pending until commit).

        Raises:
            PersistenceError: If the statement fails
        """
        with self._translate_errors("upsert", ErrorCode.CACHE_WRITE_FAILED):
            self._transactions.begin()
            return self._insert_ops.upsert(entry)

    def delete(self, entries: Iterable[CacheEntry]) -> int:
        """Delete the given entries (pending until commit).

        Raises:
            PersistenceError: If the statement fails
        """
        with self._translate_errors("delete", ErrorCode.CACHE_WRITE_FAILED):
            self._transactions.begin()
            return self._update_ops.delete(entries)

    def bulk_delete(self, predicate: EntryPredicate) -> int:
        """Delete every entry matching a predicate (pending until commit).

        Raises:
            PersistenceError: If the statement fails
        """
        with self._translate_errors("bulk_delete", ErrorCode.CACHE_WRITE_FAILED):
            self._transactions.begin()
            return self._update_ops.bulk_delete(predicate)

    @property
    def has_pending_changes(self) -> bool:
        """Whether mutations are waiting for commit."""
        return self.conn is not None and self._transactions.active

    def commit(self) -> None:
        """Make pending mutations durable.

        The pending transaction is rolled back if the engine rejects it.

        Raises:
            PersistenceError: If the commit fails
        """
        try:
            with self._translate_errors("commit", ErrorCode.CACHE_WRITE_FAILED):
                if self.conn is None:
                    return
                self._transactions.commit()
        except ShelfCacheError:
            self.rollback()
            raise

    def rollback(self) -> None:
        """Discard pending mutations."""
        if self.conn is None:
            return
        try:
            self._transactions.rollback()
        except sqlite3.Error:
            logger.warning("Rollback failed for %s", self.db_path, exc_info=True)

    @contextmanager
    def transaction(self) -> Generator[SQLiteEntryStore, None, None]:
        """Group mutations; commit on success, roll back on exception.

        Raises:
            PersistenceError: If the commit fails
        """
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        self.commit()

    def close(self) -> None:
        """Roll back pending mutations and close the connection."""
        if self.conn is not None:
            self.rollback()
            self.conn.close()
            self.conn = None
            for ops in (self._query_ops, self._insert_ops, self._update_ops):
                ops.conn = None
            logger.debug("Closed SQLite store connection: %s", self.db_path)
