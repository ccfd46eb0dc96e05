"""
Bar and drink catalog backed by the Google Sheets source of record.
"""

from .models import (
    Address,
    Bar,
    Coordinates,
    Drink,
    bar_from_row,
    drink_from_row,
    menu_drink_from_row,
)
from .location import (
    BarDistance,
    calculate_distance,
    find_nearby_bars,
    is_valid_coordinates,
)
from .bar_service import (
    BarDataService,
    get_bar_data_service,
)
from .drink_service import (
    DrinkDataService,
    filter_drinks,
    get_drink_data_service,
)
from .menu_service import (
    BarMenuService,
    BarUnavailable,
    get_bar_menu_service,
)

__all__ = [
    # Models
    "Address",
    "Bar",
    "Coordinates",
    "Drink",
    "bar_from_row",
    "drink_from_row",
    "menu_drink_from_row",
    # Location
    "BarDistance",
    "calculate_distance",
    "find_nearby_bars",
    "is_valid_coordinates",
    # Services
    "BarDataService",
    "get_bar_data_service",
    "DrinkDataService",
    "filter_drinks",
    "get_drink_data_service",
    "BarMenuService",
    "BarUnavailable",
    "get_bar_menu_service",
]
