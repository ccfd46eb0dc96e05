"""
Distance helpers for nearby-bar search.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import Bar, Coordinates

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371

DEFAULT_MAX_DISTANCE_MILES = 15.0
MAX_DISTANCE_MILES = 300.0
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True)
class BarDistance:
    """A bar with its distance from the search origin."""
    bar: Bar
    distance_km: float
    distance_miles: float

    def to_dict(self) -> Dict[str, Any]:
        data = self.bar.to_dict()
        data["distance_km"] = self.distance_km
        data["distance_miles"] = self.distance_miles
        return data


def is_valid_coordinates(latitude: Optional[float], longitude: Optional[float]) -> bool:
    if latitude is None or longitude is None:
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def calculate_distance(origin: Coordinates, target: Coordinates) -> Tuple[float, float]:
    """Haversine great-circle distance as (km, miles), rounded to 2 places."""
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    d_lat = math.radians(target.latitude - origin.latitude)
    d_lng = math.radians(target.longitude - origin.longitude)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    km = EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(km, 2), round(km * KM_TO_MILES, 2)


def find_nearby_bars(
    bars: Iterable[Bar],
    origin: Coordinates,
    max_distance_miles: float = DEFAULT_MAX_DISTANCE_MILES,
    limit: int = DEFAULT_LIMIT,
) -> List[BarDistance]:
    """Bars within ``max_distance_miles`` of ``origin``, closest first."""
    ranked = []
    for bar in bars:
        km, miles = calculate_distance(origin, bar.location)
        if miles <= max_distance_miles:
            ranked.append(BarDistance(bar, km, miles))
    ranked.sort(key=lambda d: d.distance_miles)
    return ranked[:limit]
