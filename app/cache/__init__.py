"""
Read-through caching with explicit invalidation and request coalescing.
"""
from .core import (
    CacheEntry,
    CacheError,
    CacheMeta,
    CacheSource,
    InvalidationFailure,
    UpstreamFetchFailure,
)
from .ttl_policies import (
    TTL_CONFIG,
    EntityType,
    cache_key,
    get_ttl_for_entity,
)
from .coalescer import RequestCoalescer
from .manager import CacheManager, get_cache_manager, reset_cache_manager
from .service import ReadThroughCacheService

__all__ = [
    # Core types
    "CacheEntry",
    "CacheError",
    "CacheMeta",
    "CacheSource",
    "InvalidationFailure",
    "UpstreamFetchFailure",
    # TTL policies
    "TTL_CONFIG",
    "EntityType",
    "cache_key",
    "get_ttl_for_entity",
    # Coalescing
    "RequestCoalescer",
    # Manager
    "CacheManager",
    "get_cache_manager",
    "reset_cache_manager",
    # Service
    "ReadThroughCacheService",
]
