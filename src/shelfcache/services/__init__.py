"""shelfcache services: entry store, cache manager and typed caches."""

from shelfcache.services.cache_manager import CacheManager
from shelfcache.services.cache_models import CacheEntry, EntryPredicate
from shelfcache.services.cached_value import CachedValue
from shelfcache.services.sqlite_store import SQLiteEntryStore
from shelfcache.services.typed_cache import TypedCache

__all__ = [
    "CacheEntry",
    "CacheManager",
    "CachedValue",
    "EntryPredicate",
    "SQLiteEntryStore",
    "TypedCache",
]
