"""
Bar menu service: each bar's drinks, read from the bar's own spreadsheet.
"""
import logging
from typing import Optional, List, Tuple

from app.cache import (
    CacheManager,
    EntityType,
    UpstreamFetchFailure,
    cache_key,
    get_cache_manager,
    get_ttl_for_entity,
)
from app.sheets_client import SheetRangeNotFound, SheetsClient, rows_to_records
from config.settings import Settings, settings as default_settings

from .bar_service import BarDataService, get_bar_data_service
from .models import Bar, Drink, map_rows, menu_drink_from_row

logger = logging.getLogger("catalog.menu_service")

# (tab name, category) for every tab a menu spreadsheet may have
MENU_TABS = (
    ("Beer", "beer"),
    ("Wine", "wine"),
    ("Cocktail", "cocktail"),
    ("Spirit", "spirit"),
    ("Non_Alcoholic", "non-alcoholic"),
)


class BarUnavailable(Exception):
    """The bar is unknown or inactive. The message is safe to show to clients."""

    def __init__(self, message: str, bar_id: str):
        super().__init__(message)
        self.bar_id = bar_id


class BarMenuService:
    """
    Per-bar drink menus behind the shared cache.

    Menus are cached under ``bars:menu:<bar id>:<menu sheet id>``: they are
    dropped with every bar cache clear, and a bar that moves to a new sheet
    is read from the new one. Keys exist only for bars in the bars sheet.
    """

    def __init__(
        self,
        bars: Optional[BarDataService] = None,
        client: Optional[SheetsClient] = None,
        ttl_seconds: Optional[int] = None,
        manager: Optional[CacheManager] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self._bars = bars
        self._client = client or SheetsClient(config=config)
        self._ttl = (
            ttl_seconds if ttl_seconds is not None
            else get_ttl_for_entity(EntityType.BARS, config)
        )
        self._manager = manager

    @property
    def manager(self) -> CacheManager:
        return self._manager or get_cache_manager()

    @property
    def bars(self) -> BarDataService:
        return self._bars or get_bar_data_service()

    def fetch_menu(self, menu_sheet_id: str) -> List[Drink]:
        """
        Read every category tab of a menu spreadsheet.

        Missing tabs are skipped. Any other failure fails the whole menu, so
        a partial menu is never cached.

        Raises:
            UpstreamFetchFailure: A tab could not be read, or no tab exists
        """
        drinks: List[Drink] = []
        found = 0
        for tab, category in MENU_TABS:
            try:
                values = self._client.fetch_values(menu_sheet_id, f"{tab}!A:Z")
            except SheetRangeNotFound:
                logger.info(f"Menu {menu_sheet_id} has no {tab} tab")
                continue
            found += 1
            tab_drinks = map_rows(
                rows_to_records(values), lambda row: menu_drink_from_row(row, category)
            )
            logger.info(f"Added {len(tab_drinks)} drinks from {tab}")
            drinks.extend(tab_drinks)

        if not found:
            raise UpstreamFetchFailure(f"No menu tabs found in spreadsheet {menu_sheet_id}")
        return drinks

    def get_bar_menu(self, bar_id: str) -> Tuple[Bar, List[Drink], str]:
        """
        Get a bar and its menu.

        Returns:
            (bar, drinks, source) where source is "cache" or "live"

        Raises:
            BarUnavailable: No such bar, or the bar is inactive
            UpstreamFetchFailure: The bars sheet or the menu could not be read
        """
        bar = self.bars.get_bar_by_id(bar_id)
        if bar is None:
            raise BarUnavailable("Bar not found", bar_id)
        if not bar.active:
            raise BarUnavailable("Bar is currently inactive", bar_id)

        data, meta = self.manager.get(
            cache_key(EntityType.BARS, f"menu:{bar.id}:{bar.menu_sheet_id}"),
            lambda: self.fetch_menu(bar.menu_sheet_id),
            ttl_seconds=self._ttl,
        )
        logger.info(f"Loaded {len(data)} drinks from {bar.name}'s menu ({meta.source.value})")
        return bar, list(data), meta.source.value


# Global service instance
_bar_menu_service: Optional[BarMenuService] = None


def get_bar_menu_service() -> BarMenuService:
    """Get or create the global bar menu service."""
    global _bar_menu_service
    if _bar_menu_service is None:
        _bar_menu_service = BarMenuService()
    return _bar_menu_service
