"""
shelfcache - persistent typed key-value cache

An embedded SQLite-backed cache whose entries expire after a maximum age
or when the version tag of the code that wrote them changes.
"""

__version__ = "0.1.0"

from .config import CacheSettings
from .services import CacheManager, CachedValue, SQLiteEntryStore, TypedCache
from .shared.errors import (
    ConfinementViolation,
    DecodingError,
    EncodingError,
    PersistenceError,
    ShelfCacheError,
    StoreOpenError,
)

__all__ = [
    "CacheManager",
    "CacheSettings",
    "CachedValue",
    "ConfinementViolation",
    "DecodingError",
    "EncodingError",
    "PersistenceError",
    "SQLiteEntryStore",
    "ShelfCacheError",
    "StoreOpenError",
    "TypedCache",
]
