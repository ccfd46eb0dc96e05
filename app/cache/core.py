"""
Core cache data structures and error types.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Tuple
from enum import Enum


class CacheSource(Enum):
    """Where a result came from."""
    CACHE = "cache"  # Served from a populated entry
    LIVE = "live"    # Fetched from the source of record


class CacheError(Exception):
    """Base class for cache failures."""


class UpstreamFetchFailure(CacheError):
    """The source of record was unreachable or returned an error."""

    def __init__(self, message: str, cache_key: Optional[str] = None):
        super().__init__(message)
        self.cache_key = cache_key


class InvalidationFailure(CacheError):
    """A cache clear could not complete."""


@dataclass(frozen=True)
class CacheEntry:
    """
    A materialized entity list for one cache key.

    Entries are never updated in place; a refetch replaces the whole entry.
    """
    data: Tuple[Any, ...]
    fetched_at: datetime
    ttl_seconds: int = 0  # 0 = no expiry
    source: CacheSource = CacheSource.LIVE  # origin of the data when stored
    version: int = 0  # unique per stored fetch; derived views copy their parent's

    @property
    def age_seconds(self) -> float:
        """Seconds since data was fetched."""
        return (datetime.utcnow() - self.fetched_at).total_seconds()

    @property
    def is_fresh(self) -> bool:
        """Check if data is within its TTL."""
        if self.ttl_seconds <= 0:
            return True
        return self.age_seconds < self.ttl_seconds


@dataclass
class CacheMeta:
    """
    Metadata about a cache access, for logging and stats.
    """
    cache_key: str
    source: CacheSource
    fetched_at: datetime
    count: int
    version: int = 0
