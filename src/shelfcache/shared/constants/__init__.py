"""
shelfcache Constants Module

Centralized constants for the shelfcache package.
"""

from .cache import CacheDefaults, LogPreview, StoreSchema

__all__ = [
    "CacheDefaults",
    "LogPreview",
    "StoreSchema",
]
