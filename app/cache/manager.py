"""
Process-wide read-through cache store.

The store is a plain dict that is never mutated after publication. Writers
build a new dict under a lock and swap the reference, so a reader always
sees one complete snapshot. Each clear bumps a generation counter; a fetch
that started under an older generation does not get stored.
"""
import itertools
import threading
import logging
from datetime import datetime
from typing import Dict, Optional, Callable, Any, Iterable, Tuple

from .core import (
    CacheEntry,
    CacheMeta,
    CacheSource,
    InvalidationFailure,
    UpstreamFetchFailure,
)
from .coalescer import RequestCoalescer

logger = logging.getLogger("cache.manager")

# (generation, entries) published together as one reference
_State = Tuple[int, Dict[str, CacheEntry]]


class CacheManager:
    """
    Read-through cache with:
    - Per-entry TTL
    - Request coalescing for concurrent misses
    - Atomic whole-store swap on clear
    """

    def __init__(
        self,
        enabled: bool = True,
        coalesce: bool = True,
        coalesce_timeout: float = 30.0,
        lock_timeout: float = 5.0,
    ):
        """
        Args:
            enabled: When False every read goes to the source and nothing is stored
            coalesce: Share one upstream call between concurrent misses
            coalesce_timeout: Timeout for waiting on a coalesced fetch
            lock_timeout: Max seconds a clear waits for the write lock
        """
        self._enabled = enabled
        self._state: _State = (0, {})
        self._write_lock = threading.Lock()
        self._lock_timeout = lock_timeout
        self._coalescer = RequestCoalescer(timeout=coalesce_timeout, enabled=coalesce)
        self._versions = itertools.count(1)

        self._stats_lock = threading.Lock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "expired": 0,
            "pruned": 0,
            "clears": 0,
            "fetch_failures": 0,
        }

    @property
    def generation(self) -> int:
        return self._state[0]

    def get(
        self,
        cache_key: str,
        fetch_fn: Callable[[], Iterable[Any]],
        ttl_seconds: int = 0,
        force_refresh: bool = False,
    ) -> Tuple[Tuple[Any, ...], CacheMeta]:
        """
        Get data from cache or fetch it from the source of record.

        Args:
            cache_key: Unique cache key
            fetch_fn: Returns the full entity list for this key
            ttl_seconds: Freshness window for a newly stored entry (0 = no expiry)
            force_refresh: Skip the cached entry and refetch

        Returns:
            (data, cache_meta) tuple

        Raises:
            UpstreamFetchFailure: The fetch failed or timed out; the cache is unchanged
        """
        generation, entries = self._state

        if self._enabled and not force_refresh:
            entry = entries.get(cache_key)
            if entry is not None:
                if entry.is_fresh:
                    logger.debug(f"CACHE HIT: {cache_key} [age={entry.age_seconds:.1f}s]")
                    self._bump("hits")
                    return entry.data, CacheMeta(
                        cache_key, CacheSource.CACHE, entry.fetched_at, len(entry.data),
                        entry.version,
                    )
                logger.info(f"CACHE EXPIRED: {cache_key} [age={entry.age_seconds:.1f}s]")
                self._bump("expired")
            else:
                logger.info(f"CACHE MISS: {cache_key}")
        elif force_refresh:
            logger.info(f"FORCE REFRESH: {cache_key}")

        def fetch_and_store() -> CacheEntry:
            data = fetch_fn()
            if data is None:
                raise UpstreamFetchFailure(f"No data returned for {cache_key}", cache_key)
            fresh = CacheEntry(
                data=tuple(data),
                fetched_at=datetime.utcnow(),
                ttl_seconds=ttl_seconds,
                version=next(self._versions),
            )
            if self._enabled:
                self._put(cache_key, fresh, generation)
            return fresh

        try:
            # Generation in the key: a read after clear never joins a pre-clear fetch
            fresh = self._coalescer.get_or_fetch(f"{cache_key}@{generation}", fetch_and_store)
        except UpstreamFetchFailure:
            self._bump("fetch_failures")
            raise
        except TimeoutError as e:
            self._bump("fetch_failures")
            raise UpstreamFetchFailure(str(e), cache_key) from e
        except Exception as e:
            self._bump("fetch_failures")
            raise UpstreamFetchFailure(f"Fetch failed for {cache_key}: {e}", cache_key) from e

        self._bump("misses")
        return fresh.data, CacheMeta(
            cache_key, CacheSource.LIVE, fresh.fetched_at, len(fresh.data), fresh.version
        )

    def get_derived(
        self,
        cache_key: str,
        parent_key: str,
        parent_fetch: Callable[[], Iterable[Any]],
        derive_fn: Callable[[Tuple[Any, ...]], Iterable[Any]],
        ttl_seconds: int = 0,
    ) -> Tuple[Tuple[Any, ...], CacheMeta]:
        """
        Get a view computed from another cached entry (e.g. active from all).

        The parent is read through ``get``. The stored view carries the
        parent's version and fetched_at, and is only served while that exact
        parent entry is current, so it expires with the parent and never
        holds entities the parent no longer has.

        Raises:
            UpstreamFetchFailure: The parent could not be fetched; the cache is unchanged
        """
        generation = self.generation
        parent_data, parent_meta = self.get(parent_key, parent_fetch, ttl_seconds=ttl_seconds)

        if self._enabled:
            entry = self._state[1].get(cache_key)
            if entry is not None and entry.version == parent_meta.version:
                return entry.data, CacheMeta(
                    cache_key, CacheSource.CACHE, entry.fetched_at, len(entry.data),
                    entry.version,
                )

        derived = CacheEntry(
            data=tuple(derive_fn(parent_data)),
            fetched_at=parent_meta.fetched_at,
            ttl_seconds=ttl_seconds,
            source=parent_meta.source,
            version=parent_meta.version,
        )
        if self._enabled:
            self._put(cache_key, derived, generation)
        logger.debug(f"Derived {cache_key} from {parent_key} (version {derived.version})")
        return derived.data, CacheMeta(
            cache_key, parent_meta.source, derived.fetched_at, len(derived.data), derived.version
        )

    def _put(self, cache_key: str, entry: CacheEntry, generation: int) -> None:
        """
        Publish a new store containing ``entry``, unless a clear happened since.

        Expired entries are dropped from the copy, so keys that are no longer
        read do not accumulate.
        """
        with self._write_lock:
            current_generation, entries = self._state
            if current_generation != generation:
                logger.debug(f"Discarding fetch for {cache_key}: cache cleared while in flight")
                return
            updated = {k: v for k, v in entries.items() if v.is_fresh}
            pruned = len(entries) - len(updated)
            updated[cache_key] = entry
            self._state = (current_generation, updated)

        if pruned:
            logger.debug(f"Pruned {pruned} expired cache entries")
            with self._stats_lock:
                self._stats["pruned"] += pruned

    def clear(self, prefix: Optional[str] = None) -> int:
        """
        Invalidate all entries, or all entries whose key starts with ``prefix``.

        Returns:
            Number of entries removed

        Raises:
            InvalidationFailure: The store could not be swapped
        """
        if not self._write_lock.acquire(timeout=self._lock_timeout):
            raise InvalidationFailure(
                f"Cache store busy, clear did not complete within {self._lock_timeout}s"
            )
        try:
            generation, entries = self._state
            if prefix is None:
                survivors: Dict[str, CacheEntry] = {}
            else:
                survivors = {k: v for k, v in entries.items() if not k.startswith(prefix)}
            removed = len(entries) - len(survivors)
            self._state = (generation + 1, survivors)
        except Exception as e:
            raise InvalidationFailure(f"Cache clear failed: {e}") from e
        finally:
            self._write_lock.release()

        self._bump("clears")
        scope = f"'{prefix}*'" if prefix else "all keys"
        logger.info(f"Cleared {removed} cache entries ({scope})")
        return removed

    def invalidate(self, cache_key: str) -> bool:
        """
        Invalidate a single entry.

        Returns:
            True if the entry existed
        """
        with self._write_lock:
            generation, entries = self._state
            if cache_key not in entries:
                return False
            survivors = {k: v for k, v in entries.items() if k != cache_key}
            self._state = (generation + 1, survivors)
        logger.info(f"Invalidated cache: {cache_key}")
        return True

    def peek(self, cache_key: str) -> Optional[CacheEntry]:
        """Return the stored entry without counting a hit or fetching."""
        return self._state[1].get(cache_key)

    def keys(self) -> Tuple[str, ...]:
        return tuple(self._state[1].keys())

    def _bump(self, stat: str) -> None:
        with self._stats_lock:
            self._stats[stat] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        generation, entries = self._state
        with self._stats_lock:
            stats = dict(self._stats)

        total_requests = stats["hits"] + stats["misses"]
        hit_rate = (stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        return {
            "enabled": self._enabled,
            "entries": len(entries),
            "generation": generation,
            **stats,
            "hit_rate_percent": round(hit_rate, 1),
            "coalescer": self._coalescer.get_stats(),
        }


# Global cache manager instance
_cache_manager: Optional[CacheManager] = None
_cache_manager_lock = threading.Lock()


def get_cache_manager() -> CacheManager:
    """Get or create the global cache manager."""
    global _cache_manager
    if _cache_manager is None:
        with _cache_manager_lock:
            if _cache_manager is None:
                from config.settings import settings

                _cache_manager = CacheManager(
                    enabled=settings.cache_enabled,
                    coalesce=settings.coalesce_enabled,
                    coalesce_timeout=settings.coalesce_timeout_seconds,
                )
    return _cache_manager


def reset_cache_manager() -> None:
    """Discard the global cache manager; the next call creates an empty one."""
    global _cache_manager
    with _cache_manager_lock:
        _cache_manager = None
