"""Single cached value handle.

Wraps one fixed key of a typed cache so callers can treat it like an
attribute: read ``handle.value``, assign to update, assign None to clear.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

from shelfcache.shared.constants import CacheDefaults

if TYPE_CHECKING:
    from shelfcache.services.typed_cache import TypedCache

V = TypeVar("V")


class CachedValue(Generic[V]):
    """One value persisted in a dedicated cache namespace."""

    def __init__(self, cache: TypedCache[str, V], key: str = CacheDefaults.SINGLE_VALUE_KEY) -> None:
        self.cache = cache
        self.key = key

    @property
    def value(self) -> V | None:
        return self.cache.get(self.key)

    @value.setter
    def value(self, new_value: V | None) -> None:
        self.cache.set(self.key, new_value)

    def clear(self) -> None:
        self.cache.delete(self.key)
