"""
Drink data service: the drinks sheet behind a read-through cache.
"""
import logging
from typing import Optional, List, Dict, Any, Iterable, Tuple

from app.cache import (
    CacheManager,
    EntityType,
    ReadThroughCacheService,
    get_ttl_for_entity,
)
from app.sheets_client import SheetsClient, rows_to_records
from config.settings import Settings, settings as default_settings

from .models import Drink, drink_from_row, map_rows

logger = logging.getLogger("catalog.drink_service")


def _normalize(values: Optional[Iterable[str]]) -> List[str]:
    return [v.strip().lower() for v in (values or []) if v and v.strip()]


def filter_drinks(
    drinks: List[Drink],
    categories: Optional[Iterable[str]] = None,
    flavors: Optional[Iterable[str]] = None,
    strength: Optional[Iterable[str]] = None,
    occasions: Optional[Iterable[str]] = None,
    search: Optional[str] = None,
) -> List[Drink]:
    """
    Filter a drink list.

    Each given filter must match; within a filter any listed value matches.
    ``search`` is a case-insensitive substring over name, description and
    ingredients.
    """
    categories = _normalize(categories)
    flavors = _normalize(flavors)
    strength = _normalize(strength)
    occasions = _normalize(occasions)
    needle = (search or "").strip().lower()

    result = []
    for drink in drinks:
        if categories and drink.category not in categories:
            continue
        if flavors and not set(flavors) & set(drink.flavor_profile):
            continue
        if strength and drink.strength not in strength:
            continue
        if occasions and not set(occasions) & set(drink.occasions):
            continue
        if needle:
            haystack = " ".join((drink.name, drink.description, *drink.ingredients)).lower()
            if needle not in haystack:
                continue
        result.append(drink)
    return result


class DrinkDataService:
    """Drinks from the menu sheet, cached as all / active views."""

    def __init__(
        self,
        client: Optional[SheetsClient] = None,
        spreadsheet_id: Optional[str] = None,
        cell_range: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        manager: Optional[CacheManager] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self._client = client or SheetsClient(config=config)
        self._spreadsheet_id = spreadsheet_id or config.drinks_spreadsheet_id
        self._range = cell_range or config.drinks_range
        self._cache: ReadThroughCacheService[Drink] = ReadThroughCacheService(
            EntityType.DRINKS,
            fetch_fn=self.fetch_drinks,
            is_active=lambda drink: drink.available,
            ttl_seconds=(
                ttl_seconds if ttl_seconds is not None
                else get_ttl_for_entity(EntityType.DRINKS, config)
            ),
            manager=manager,
        )

    def fetch_drinks(self) -> List[Drink]:
        """Read and map the drinks sheet. Raises UpstreamFetchFailure."""
        logger.info("Fetching drinks from Google Sheets...")
        records = rows_to_records(self._client.fetch_values(self._spreadsheet_id, self._range))
        drinks = map_rows(records, drink_from_row)
        logger.info(f"Mapped {len(drinks)} of {len(records)} drink rows")
        return drinks

    def get_all_drinks(self) -> Tuple[List[Drink], str]:
        drinks, source = self._cache.get_all()
        logger.info(f"Loaded {len(drinks)} drinks ({source})")
        return drinks, source

    def get_active_drinks(self) -> List[Drink]:
        return self._cache.get_active()

    def get_drinks_by_category(self, category: str) -> List[Drink]:
        # Filtered per read; caller-supplied categories never become cache keys
        return filter_drinks(self.get_active_drinks(), categories=[category])

    def get_drink_by_id(self, drink_id: str) -> Optional[Drink]:
        drinks, _ = self._cache.get_all()
        for drink in drinks:
            if drink.id == drink_id:
                return drink
        return None

    def clear_cache(self) -> bool:
        """Drop every cached drink view. Raises InvalidationFailure if the clear fails."""
        cleared = self._cache.clear()
        logger.info("Drink cache cleared")
        return cleared

    def get_cache_stats(self) -> Dict[str, Any]:
        return self._cache.stats()


# Global service instance
_drink_data_service: Optional[DrinkDataService] = None


def get_drink_data_service() -> DrinkDataService:
    """Get or create the global drink data service."""
    global _drink_data_service
    if _drink_data_service is None:
        _drink_data_service = DrinkDataService()
    return _drink_data_service
