"""
Cache Configuration Constants

This module provides the constants shared by the store, the cache
manager and the configuration layer.
"""


class CacheDefaults:
    """Defaults used when the host does not override them."""

    DIRECTORY_NAME = "shelfcache"
    DB_SUFFIX = ".sqlite"
    SINGLE_VALUE_VERSION = "1"
    SINGLE_VALUE_KEY = "value"
    LOG_LEVEL = "INFO"
    ENV_PREFIX = "SHELFCACHE_"


class StoreSchema:
    """Table, index and column names of the SQLite store."""

    VERSION = 1
    TABLE = "cache_entry"
    VERSION_TABLE = "schema_version"
    INDEX_CACHE_KEY = "idx_cache_key"
    COLUMNS = ("id", "cache", "cache_version", "key", "value", "date")

    # Fixed-width ISO-8601 so text comparison is chronological
    DATE_TIMESPEC = "microseconds"

    SIDECAR_SUFFIXES = ("-wal", "-shm", "-journal")


class LogPreview:
    """Truncation lengths for values echoed into logs."""

    KEY_PREVIEW_LENGTH = 50
