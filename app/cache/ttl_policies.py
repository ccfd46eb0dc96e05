"""
TTL configuration per entity type.
"""
from enum import Enum
from typing import Dict, Optional

from config.settings import Settings, settings as default_settings


class EntityType(Enum):
    """Entity lists served through the read-through cache."""
    BARS = "bars"
    DRINKS = "drinks"


# Defaults in seconds; the sheet is edited by hand, so minutes are fine
TTL_CONFIG: Dict[EntityType, int] = {
    EntityType.BARS: 300,    # 5 minutes
    EntityType.DRINKS: 300,  # 5 minutes
}


def get_ttl_for_entity(
    entity_type: EntityType,
    config: Optional[Settings] = None,
) -> int:
    """
    Get the TTL for an entity type.

    Settings override the defaults; a value of 0 disables expiry so that
    entries only go away on an explicit clear.

    Args:
        entity_type: The entity type
        config: Settings to read overrides from (defaults to global settings)

    Returns:
        TTL in seconds
    """
    config = config or default_settings
    overrides = {
        EntityType.BARS: config.bars_cache_ttl_seconds,
        EntityType.DRINKS: config.drinks_cache_ttl_seconds,
    }
    ttl = overrides.get(entity_type)
    if ttl is None:
        return TTL_CONFIG.get(entity_type, 300)
    return max(int(ttl), 0)


def cache_key(entity_type: EntityType, view: str) -> str:
    """Build the cache key for an (entity type, filter) pair."""
    return f"{entity_type.value}:{view}"
