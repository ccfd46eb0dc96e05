"""
Bar data service: the bars sheet behind a read-through cache.
"""
import logging
from typing import Optional, List, Dict, Any, Tuple

from app.cache import (
    CacheManager,
    EntityType,
    ReadThroughCacheService,
    get_ttl_for_entity,
)
from app.sheets_client import SheetsClient, rows_to_records
from config.settings import Settings, settings as default_settings

from .location import (
    DEFAULT_LIMIT,
    DEFAULT_MAX_DISTANCE_MILES,
    BarDistance,
    find_nearby_bars,
)
from .models import Bar, Coordinates, bar_from_row, map_rows

logger = logging.getLogger("catalog.bar_service")


class BarDataService:
    """
    Bars from the master sheet.

    get_active_bars / get_all_bars go through the cache; clear_cache drops
    both views so the next read refetches.
    """

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
        self._spreadsheet_id = spreadsheet_id or config.bars_spreadsheet_id
        self._range = cell_range or config.bars_range
        self._cache: ReadThroughCacheService[Bar] = ReadThroughCacheService(
            EntityType.BARS,
            fetch_fn=self.fetch_bars,
            is_active=lambda bar: bar.active,
            ttl_seconds=(
                ttl_seconds if ttl_seconds is not None
                else get_ttl_for_entity(EntityType.BARS, config)
            ),
            manager=manager,
        )

    def fetch_bars(self) -> List[Bar]:
        """Read and map the bars sheet. Raises UpstreamFetchFailure."""
        logger.info("Fetching bars from Google Sheets...")
        records = rows_to_records(self._client.fetch_values(self._spreadsheet_id, self._range))
        bars = map_rows(records, bar_from_row)
        logger.info(f"Mapped {len(bars)} of {len(records)} bar rows")
        return bars

    def get_all_bars(self) -> Tuple[List[Bar], str]:
        bars, source = self._cache.get_all()
        logger.info(f"Loaded {len(bars)} bars ({source})")
        return bars, source

    def get_active_bars(self) -> List[Bar]:
        return self._cache.get_active()

    def get_bar_by_id(self, bar_id: str) -> Optional[Bar]:
        bars, _ = self._cache.get_all()
        for bar in bars:
            if bar.id == bar_id:
                return bar
        return None

    def find_nearby_bars(
        self,
        latitude: float,
        longitude: float,
        max_distance_miles: float = DEFAULT_MAX_DISTANCE_MILES,
        limit: int = DEFAULT_LIMIT,
        active_only: bool = True,
    ) -> List[BarDistance]:
        """Cached bars near a point, closest first. Raises UpstreamFetchFailure."""
        bars = self.get_active_bars() if active_only else self.get_all_bars()[0]
        nearby = find_nearby_bars(
            bars, Coordinates(latitude, longitude), max_distance_miles, limit
        )
        logger.info(
            f"Found {len(nearby)} bars within {max_distance_miles} miles of "
            f"{latitude}, {longitude}"
        )
        return nearby

    def clear_cache(self) -> bool:
        """Drop cached bars. Raises InvalidationFailure if the clear fails."""
        cleared = self._cache.clear()
        logger.info("Bar cache cleared")
        return cleared

    def get_cache_stats(self) -> Dict[str, Any]:
        return self._cache.stats()


# Global service instance
_bar_data_service: Optional[BarDataService] = None


def get_bar_data_service() -> BarDataService:
    """Get or create the global bar data service."""
    global _bar_data_service
    if _bar_data_service is None:
        _bar_data_service = BarDataService()
    return _bar_data_service
