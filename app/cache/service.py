"""
Read-through cache service for one entity type.

Wraps the shared CacheManager with the "all" and "active" views that the
bar and drink services expose.
"""
import logging
from typing import Callable, Generic, Iterable, List, Optional, Tuple, TypeVar

from .manager import CacheManager, get_cache_manager
from .ttl_policies import EntityType, cache_key, get_ttl_for_entity

logger = logging.getLogger("cache.service")

T = TypeVar("T")

ALL_VIEW = "all"
ACTIVE_VIEW = "active"


class ReadThroughCacheService(Generic[T]):
    """
    Serves entity lists from the cache, fetching from the source of record on miss.

    Keys:
        <entity>:all     - the unfiltered list
        <entity>:active  - entities passing ``is_active``

    The active view is derived from the all view and tied to that exact
    entry, so both always come from the same upstream snapshot.
    """

    def __init__(
        self,
        entity_type: EntityType,
        fetch_fn: Callable[[], Iterable[T]],
        is_active: Callable[[T], bool],
        ttl_seconds: Optional[int] = None,
        manager: Optional[CacheManager] = None,
    ):
        self.entity_type = entity_type
        self._fetch_fn = fetch_fn
        self._is_active = is_active
        self._ttl = get_ttl_for_entity(entity_type) if ttl_seconds is None else ttl_seconds
        self._manager = manager

    @property
    def manager(self) -> CacheManager:
        return self._manager or get_cache_manager()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def get_all(self) -> Tuple[List[T], str]:
        """
        Get the unfiltered list.

        Returns:
            (entities, source) where source is "cache" or "live"

        Raises:
            UpstreamFetchFailure: The source of record could not be read
        """
        data, meta = self.manager.get(
            cache_key(self.entity_type, ALL_VIEW),
            self._fetch_fn,
            ttl_seconds=self._ttl,
        )
        return list(data), meta.source.value

    def get_active(self) -> List[T]:
        """
        Get entities passing the active predicate.

        Raises:
            UpstreamFetchFailure: The source of record could not be read
        """
        data, _ = self.manager.get_derived(
            cache_key(self.entity_type, ACTIVE_VIEW),
            cache_key(self.entity_type, ALL_VIEW),
            self._fetch_fn,
            lambda entities: [e for e in entities if self._is_active(e)],
            ttl_seconds=self._ttl,
        )
        return list(data)

    def clear(self) -> bool:
        """
        Invalidate every cached view of this entity type.

        Returns True once the clear has completed, including when nothing
        was cached.

        Raises:
            InvalidationFailure: The clear could not complete
        """
        removed = self.manager.clear(prefix=f"{self.entity_type.value}:")
        logger.info(f"Cleared {self.entity_type.value} cache ({removed} entries)")
        return True

    def stats(self) -> dict:
        manager = self.manager
        all_entry = manager.peek(cache_key(self.entity_type, ALL_VIEW))
        return {
            "cached": all_entry is not None,
            "count": len(all_entry.data) if all_entry else 0,
            "fetched_at": all_entry.fetched_at.isoformat() + "Z" if all_entry else None,
            "valid": bool(all_entry and all_entry.is_fresh),
            "ttl": self._ttl,
        }
