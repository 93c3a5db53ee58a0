"""Cache entry dataclass models.

This module defines the persisted entry record and the predicate type
used to select entries in the SQLite store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from shelfcache.shared.constants import StoreSchema

__all__ = ["CacheEntry", "EntryPredicate", "format_timestamp", "parse_timestamp", "to_utc"]


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as fixed-width ISO-8601 UTC text."""
    return to_utc(value).isoformat(timespec=StoreSchema.DATE_TIMESPEC)


def parse_timestamp(text: str) -> datetime:
    """Parse stored timestamp text into an aware UTC datetime."""
    return to_utc(datetime.fromisoformat(text))


@dataclass
class CacheEntry:
    """SQLite cache entry domain model.

    One row per (cache, key). Expiration policy is not stored here; the
    typed cache that reads the row decides whether it is stale.

    Attributes:
        cache: Namespace of the logical cache the entry belongs to
        cache_version: Version tag of the code that wrote the entry
        key: Canonical JSON encoding of the key
        value: Canonical JSON encoding of the value
        date: Write time (UTC)
        id: Row id, None until the entry has been stored

    Example:
        >>> entry = CacheEntry(
        ...     cache="users",
        ...     cache_version="2",
        ...     key='"alice"',
        ...     value='{"age":30}',
        ...     date=datetime.now(timezone.utc),
        ... )
    """

    cache: str
    cache_version: str
    key: str
    value: str
    date: datetime
    id: int | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        """Validate fields after initialization.

        Raises:
            ValueError: If cache is empty
        """
        if not self.cache:
            msg = "cache must be non-empty"
            raise ValueError(msg)
        self.date = to_utc(self.date)

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> CacheEntry:
        """Build an entry from a row in StoreSchema.COLUMNS order."""
        row_id, cache, cache_version, key, value, date = row
        return cls(
            cache=cache,
            cache_version=cache_version,
            key=key,
            value=value,
            date=parse_timestamp(date),
            id=row_id,
        )


@dataclass(frozen=True)
class EntryPredicate:
    """Selection over (cache, key, cache_version, date).

    ``cache`` and ``key`` are equality filters combined with AND.
    ``stale_version`` and ``stale_before`` form the staleness clause: an
    entry is stale if its version differs from ``stale_version`` OR its
    date is older than ``stale_before``. When both staleness fields are
    None every entry passes that clause. An empty predicate matches all
    entries.
    """

    cache: str | None = None
    key: str | None = None
    stale_version: str | None = None
    stale_before: datetime | None = None

    @classmethod
    def everything(cls) -> EntryPredicate:
        return cls()

    @classmethod
    def for_key(cls, cache: str, key: str) -> EntryPredicate:
        return cls(cache=cache, key=key)

    @classmethod
    def for_cache(cls, cache: str) -> EntryPredicate:
        return cls(cache=cache)

    @classmethod
    def stale(cls, cache: str, version: str, cutoff: datetime) -> EntryPredicate:
        """Entries of ``cache`` written by another version or before ``cutoff``."""
        return cls(cache=cache, stale_version=version, stale_before=cutoff)

    def where_clause(self) -> tuple[str, tuple[str, ...]]:
        """Compile to an SQL WHERE fragment (without the keyword) and parameters."""
        clauses: list[str] = []
        params: list[str] = []

        if self.cache is not None:
            clauses.append("cache = ?")
            params.append(self.cache)
        if self.key is not None:
            clauses.append("key = ?")
            params.append(self.key)

        stale: list[str] = []
        if self.stale_version is not None:
            stale.append("cache_version != ?")
            params.append(self.stale_version)
        if self.stale_before is not None:
            stale.append("date < ?")
            params.append(format_timestamp(self.stale_before))
        if stale:
            clauses.append("(" + " OR ".join(stale) + ")")

        if not clauses:
            return "1 = 1", ()
        return " AND ".join(clauses), tuple(params)

