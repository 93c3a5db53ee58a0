"""Configuration for shelfcache."""

from shelfcache.config.settings import CacheSettings, get_settings, reset_settings

__all__ = ["CacheSettings", "get_settings", "reset_settings"]
