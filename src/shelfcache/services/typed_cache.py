"""Typed cache view over the entries of one namespace.

Every read first purges the namespace of entries written by another
cache version or older than the max age, so a stale entry is never
returned even though nothing expires in the background.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from shelfcache.services.cache_models import CacheEntry, EntryPredicate
from shelfcache.shared.constants import LogPreview
from shelfcache.shared.errors import DecodingError
from shelfcache.shared.serialization import JsonCodec

if TYPE_CHECKING:
    from shelfcache.services.cache_manager import CacheManager

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")
T = TypeVar("T")


class TypedCache(Generic[K, V]):
    """Get/set/delete surface for one (cache name, version, max age).

    Created by :meth:`CacheManager.cache`; all calls must come from the
    manager's owning thread.
    """

    def __init__(
        self,
        manager: CacheManager,
        cache_name: str,
        cache_version: str,
        max_age: timedelta,
        *,
        key_type: Any = Any,
        value_type: Any = Any,
    ) -> None:
        self.manager = manager
        self.cache_name = cache_name
        self.cache_version = cache_version
        self.max_age = max_age
        self._key_codec: JsonCodec[K] = JsonCodec(key_type, canonical=True)
        self._value_codec: JsonCodec[V] = JsonCodec(value_type)

    def __repr__(self) -> str:
        return (
            f"TypedCache(cache_name={self.cache_name!r}, cache_version={self.cache_version!r}, "
            f"max_age={self.max_age!r})"
        )

    def get(self, key: K) -> V | None:
        """Return the cached value for ``key``, or None on a miss."""
        if not self.manager.check_thread():
            return None
        return self._object_for_key(key)

    def set(self, key: K, value: V | None) -> None:
        """Store ``value`` under ``key``; None removes the entry."""
        if not self.manager.check_thread():
            return
        self._set_object(value, key)

    def delete(self, key: K) -> None:
        """Remove the entry for ``key`` if present."""
        self.set(key, None)

    def __len__(self) -> int:
        """Number of live entries in this namespace."""
        if not self.manager.check_thread():
            return 0
        self._purge_expired_entries()
        store = self.manager.store
        count = self._guarded(
            "count_entries",
            lambda: store.count(EntryPredicate.for_cache(self.cache_name)),
        )
        return count or 0

    def _object_for_key(self, key: K) -> V | None:
        entry = self._fetch_entry(key)
        if entry is None:
            return None
        try:
            return self._value_codec.decode(entry.value)
        except DecodingError as e:
            # The entry is kept; a later set or purge replaces it
            logger.warning(
                "Error for decoding cache value %r in %s: %s",
                key,
                self.cache_name,
                e.message,
                extra={"error_code": e.code.name, "operation": "decode_value"},
            )
            return None

    def _set_object(self, value: V | None, key: K) -> None:
        if value is None:
            entry = self._fetch_entry(key)
            if entry is not None:
                store = self.manager.store
                if self._guarded("delete_entry", lambda: store.delete([entry])) is None:
                    return
                self.manager.save()
            return

        encoded_key = self._guarded("encode_key", lambda: self._key_codec.encode(key))
        if encoded_key is None:
            return
        encoded_value = self._guarded("encode_value", lambda: self._value_codec.encode(value))
        if encoded_value is None:
            return

        now = self.manager.now()
        entry = self._fetch_encoded(encoded_key)
        if entry is None:
            entry = CacheEntry(
                cache=self.cache_name,
                cache_version=self.cache_version,
                key=encoded_key,
                value=encoded_value,
                date=now,
            )
        else:
            entry.cache_version = self.cache_version
            entry.value = encoded_value
            entry.date = now

        store = self.manager.store
        if self._guarded("store_entry", lambda: store.upsert(entry)) is None:
            return
        self.manager.save()

    def _fetch_entry(self, key: K) -> CacheEntry | None:
        encoded_key = self._guarded("encode_key", lambda: self._key_codec.encode(key))
        if encoded_key is None:
            # Still sweep the namespace so reads keep their purge guarantee
            self._purge_expired_entries()
            return None
        return self._fetch_encoded(encoded_key)

    def _fetch_encoded(self, encoded_key: str) -> CacheEntry | None:
        self._purge_expired_entries()
        store = self.manager.store
        entries = self._guarded(
            "fetch_entry",
            lambda: store.fetch(EntryPredicate.for_key(self.cache_name, encoded_key)),
        )
        if not entries:
            return None
        if len(entries) > 1:
            logger.warning(
                "Found %d entries for one key in %s, using the first",
                len(entries),
                self.cache_name,
            )
        return entries[0]

    def _guarded(self, operation: str, block: Callable[[], T]) -> T | None:
        return self.manager.with_error_handling(operation, block, cache_name=self.cache_name)

    def _cutoff(self) -> datetime:
        """Oldest write time still alive; clamped for very long max ages."""
        now = self.manager.now()
        try:
            return now - self.max_age
        except OverflowError:
            return datetime.min.replace(tzinfo=timezone.utc)

    def _purge_expired_entries(self) -> None:
        cutoff = self._cutoff()
        predicate = EntryPredicate.stale(self.cache_name, self.cache_version, cutoff)
        store = self.manager.store
        purged = self._guarded(
            "purge_expired_entries",
            lambda: store.bulk_delete(predicate),
        )
        if purged is None:
            return
        if purged:
            logger.debug(
                "Purged %d stale entries from %s (version=%s, older than %s)",
                purged,
                self.cache_name[: LogPreview.KEY_PREVIEW_LENGTH],
                self.cache_version,
                cutoff.isoformat(),
            )
        # The DELETE holds the write lock even when nothing matched
        self.manager.save()
