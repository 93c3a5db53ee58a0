"""Cache manager: owner of the store and policy for all typed caches.

A CacheManager owns one SQLite store file, a clock, and the rules every
typed cache created from it follows:

- confinement: only the owning thread may use the manager or its caches
- error policy: in debug mode storage errors are raised, otherwise they
  are logged and the operation degrades to a miss or a no-op
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar, Union

from shelfcache.config.settings import CacheSettings, get_settings
from shelfcache.services.cache_models import EntryPredicate, to_utc
from shelfcache.services.cached_value import CachedValue
from shelfcache.services.sqlite_store import SQLiteEntryStore
from shelfcache.services.typed_cache import TypedCache
from shelfcache.shared.constants import CacheDefaults
from shelfcache.shared.error_handling import map_exception_to_cache_error
from shelfcache.shared.errors import (
    ConfinementViolation,
    ErrorCode,
    ErrorContext,
    ShelfCacheError,
    StoreOpenError,
    create_config_error,
)
from shelfcache.shared.logging import log_operation_error
from shelfcache.shared.serialization import has_unordered_collection

logger = logging.getLogger(__name__)

T = TypeVar("T")

MaxAge = Union[timedelta, float, int]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_max_age(max_age: MaxAge) -> timedelta:
    """Normalize a max age given as timedelta or seconds.

    Raises:
        ApplicationError: If the max age is not positive or not representable
    """
    if not isinstance(max_age, timedelta):
        try:
            max_age = timedelta(seconds=max_age)
        except (OverflowError, ValueError) as e:
            raise create_config_error(
                f"max_age must be a finite number of seconds, got {max_age!r}",
                config_key="max_age",
                operation="create_cache",
                original_error=e,
            ) from e
    if max_age <= timedelta(0):
        raise create_config_error(
            f"max_age must be positive, got {max_age}",
            config_key="max_age",
            operation="create_cache",
        )
    return max_age


class CacheManager:
    """Factory and guardian for typed caches sharing one store file.

    Example:
        >>> manager = CacheManager("weather")
        >>> forecasts = manager.cache("forecast", cache_version=3, max_age=timedelta(hours=1),
        ...                           key_type=str, value_type=dict[str, float])
        >>> forecasts.set("berlin", {"max": 21.5})
        >>> forecasts.get("berlin")
        {'max': 21.5}
    """

    def __init__(
        self,
        name: str,
        *,
        owner_thread: threading.Thread | None = None,
        store: SQLiteEntryStore | None = None,
        settings: CacheSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Create a cache manager.

        Args:
            name: Name of the manager; used as name of the store file so
                an application can keep several separate managers
            owner_thread: Only this thread may use the caches (default:
                the calling thread)
            store: Store to use instead of ``<cache_directory>/<name><suffix>``
            settings: Settings (default: process settings)
            clock: Time source returning the current UTC datetime

        Raises:
            ApplicationError: If name is empty
        """
        if not name:
            raise create_config_error("Cache manager name must be non-empty", config_key="name")

        self.name = name
        self.settings = settings or get_settings()
        self.owner_thread = owner_thread or threading.current_thread()
        self.clock: Callable[[], datetime] = clock or _utc_now
        self.log = logger.getChild(name)
        self._store = store
        self.check_thread()

    @property
    def store(self) -> SQLiteEntryStore:
        """The store, opened on first access.

        Raises:
            StoreOpenError: If the store cannot be opened even after a reset
        """
        if self._store is None:
            path = self.settings.store_path(self.name)
            self.log.debug("Cache Location: %s", path)
            self._store = SQLiteEntryStore(path)
        return self._store

    def now(self) -> datetime:
        """Current time from the manager clock, as aware UTC."""
        return to_utc(self.clock())

    def cache(
        self,
        cache_name: str,
        cache_version: str | int,
        max_age: MaxAge,
        *,
        key_type: Any = Any,
        value_type: Any = Any,
    ) -> TypedCache[Any, Any]:
        """Create a typed cache view; storage is not touched.

        Values are validated back into ``value_type`` when read. With the
        default ``Any`` a read returns the JSON form of what was written
        (tuples as lists, datetimes as ISO strings, models as dicts), so
        declare both types when values must come back unchanged.

        Args:
            cache_name: Namespace of the entries
            cache_version: Version tag; entries of other versions are purged
            max_age: Entries older than this are purged (timedelta or seconds)
            key_type: Type of the keys, used to encode them
            value_type: Type of the values, used to encode and validate them

        Raises:
            ApplicationError: If cache_name is empty, max_age is not positive,
                or key_type contains a set (sets have no canonical encoding)
        """
        self.check_thread()
        if not cache_name:
            raise create_config_error("cache_name must be non-empty", config_key="cache_name")
        if has_unordered_collection(key_type):
            raise create_config_error(
                f"key_type {key_type!r} contains a set, which has no canonical encoding",
                config_key="key_type",
                operation="create_cache",
            )
        return TypedCache(
            self,
            cache_name,
            str(cache_version),
            _to_max_age(max_age),
            key_type=key_type,
            value_type=value_type,
        )

    def single_value(
        self,
        cache_name: str,
        max_age: MaxAge,
        *,
        value_type: Any = Any,
        cache_version: str | int = CacheDefaults.SINGLE_VALUE_VERSION,
    ) -> CachedValue[Any]:
        """Create a handle on a single cached value stored in its own namespace."""
        return CachedValue(
            self.cache(cache_name, cache_version, max_age, key_type=str, value_type=value_type),
        )

    def clear_all(self) -> int:
        """Delete every entry of every cache in the store.

        Returns:
            Number of deleted entries (0 if the delete failed)
        """
        if not self.check_thread():
            return 0
        store = self.store
        deleted = self.with_error_handling(
            "clear_all",
            lambda: store.bulk_delete(EntryPredicate.everything()),
        )
        if deleted is None:
            return 0
        self.save()
        self.log.info("Cleared %d cache entries", deleted)
        return deleted

    def cache_info(self) -> dict[str, Any] | None:
        """Return store location and entry counts per cache.

        Counts include entries that would be purged on next access.
        """
        if not self.check_thread():
            return None
        store = self.store
        counts = self.with_error_handling("cache_info", store.count_by_cache)
        if counts is None:
            return None
        return {
            "name": self.name,
            "db_path": str(store.db_path),
            "total_entries": sum(counts.values()),
            "caches": counts,
        }

    def check_thread(self) -> bool:
        """Check that the caller runs on the owning thread.

        Returns:
            True if the operation may proceed

        Raises:
            ConfinementViolation: In debug mode, on a wrong-thread call
        """
        current = threading.current_thread()
        if current is self.owner_thread:
            return True

        msg = f"Illegal thread usage, cache manager owner_thread={self.owner_thread.name}, actual={current.name}"
        if self.settings.debug:
            raise ConfinementViolation(
                msg,
                ErrorCode.CONFINEMENT_VIOLATION,
                ErrorContext(
                    operation="check_thread",
                    additional_data={"owner": self.owner_thread.name, "actual": current.name},
                ),
            )

        dropped = self.settings.drop_on_confinement_violation
        self.log.error(
            "shelfcache threading error: %s%s",
            msg,
            " (operation dropped)" if dropped else "",
            extra={"error_code": ErrorCode.CONFINEMENT_VIOLATION.name, "operation": "check_thread"},
        )
        return not dropped

    def handle_error(self, error: BaseException, operation: str = "cache", cache_name: str | None = None) -> None:
        """Default handling for errors that should not occur normally.

        Raises in debug mode, logs otherwise.

        Raises:
            ShelfCacheError: In debug mode
        """
        cache_error = map_exception_to_cache_error(error, operation, cache_name)
        if self.settings.debug:
            if cache_error is error:
                raise cache_error
            raise cache_error from error
        log_operation_error(
            self.log,
            cache_error,
            operation=operation,
            additional_context={"cache_name": cache_name} if cache_name else None,
        )

    def with_error_handling(
        self,
        operation: str,
        block: Callable[[], T],
        cache_name: str | None = None,
    ) -> T | None:
        """Run ``block``; on failure apply :meth:`handle_error` and return None.

        Pending store mutations are rolled back before the error is handled,
        also when debug mode re-raises it. StoreOpenError is never absorbed:
        without a store nothing can work.
        """
        try:
            return block()
        except StoreOpenError:
            raise
        except (ShelfCacheError, sqlite3.Error) as e:
            self.discard_changes()
            self.handle_error(e, operation, cache_name)
            return None

    def save(self) -> None:
        """Commit pending store mutations."""
        store = self.store
        self.with_error_handling("save", store.commit)

    def discard_changes(self) -> None:
        """Roll back pending store mutations."""
        if self._store is not None:
            self._store.rollback()

    def close(self) -> None:
        """Close the store if it was opened."""
        self.check_thread()
        if self._store is not None:
            self._store.close()
            self._store = None

    def __enter__(self) -> CacheManager:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()
