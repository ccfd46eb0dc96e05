"""
Data models for bars and drinks.

These frozen dataclasses are the values the cache stores and hands back.
Sheet rows are mapped into them here, independent of how the rows were fetched.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple

logger = logging.getLogger("catalog.models")

BAR_REQUIRED_COLUMNS = ("ID", "Name", "MenuSheetID")
DRINK_REQUIRED_COLUMNS = ("ID", "Name")


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Address:
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""

    @property
    def formatted(self) -> str:
        """'Street, City, State, Zip' with blank parts dropped."""
        return ", ".join(p for p in (self.street, self.city, self.state, self.zip_code) if p)


@dataclass(frozen=True)
class Bar:
    """A bar from the master sheet."""
    id: str
    name: str
    address: Address
    location: Coordinates
    menu_sheet_id: str
    active: bool
    created_at: str
    updated_at: str
    description: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    # day -> (open, close)
    hours: Optional[Tuple[Tuple[str, Tuple[str, str]], ...]] = None
    features: Optional[Tuple[str, ...]] = None
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "address": {
                "street": self.address.street,
                "city": self.address.city,
                "state": self.address.state,
                "zip_code": self.address.zip_code,
                "formatted": self.address.formatted,
            },
            "location": {
                "latitude": self.location.latitude,
                "longitude": self.location.longitude,
            },
            "phone": self.phone,
            "website": self.website,
            "menu_sheet_id": self.menu_sheet_id,
            "active": self.active,
            "hours": (
                {day: {"open": o, "close": c} for day, (o, c) in self.hours}
                if self.hours is not None else None
            ),
            "features": list(self.features) if self.features is not None else None,
            "image_url": self.image_url,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class Drink:
    """A drink from the menu sheet."""
    id: str
    name: str
    category: str
    description: str = ""
    ingredients: Tuple[str, ...] = field(default_factory=tuple)
    abv: float = 0.0
    flavor_profile: Tuple[str, ...] = field(default_factory=tuple)
    strength: str = ""
    occasions: Tuple[str, ...] = field(default_factory=tuple)
    serving_suggestions: Tuple[str, ...] = field(default_factory=tuple)
    image_url: str = ""
    glass_type: Optional[str] = None
    preparation: Optional[str] = None
    happy_hour: bool = False
    happy_hour_price: Optional[str] = None
    happy_hour_times: Optional[str] = None
    available: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "ingredients": list(self.ingredients),
            "abv": self.abv,
            "flavor_profile": list(self.flavor_profile),
            "strength": self.strength,
            "occasions": list(self.occasions),
            "serving_suggestions": list(self.serving_suggestions),
            "image_url": self.image_url,
            "glass_type": self.glass_type,
            "preparation": self.preparation,
            "happy_hour": self.happy_hour,
            "happy_hour_price": self.happy_hour_price,
            "happy_hour_times": self.happy_hour_times,
        }


# =============================================================================
# Row mapping
# =============================================================================

def _blank_to_none(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _parse_bool(value: Optional[str]) -> bool:
    value = (value or "").strip().lower()
    return value in ("true", "1", "yes", "y")


def _parse_float(value: Optional[str]) -> float:
    try:
        return float((value or "").strip())
    except ValueError:
        return 0.0


def _parse_list(value: Optional[str]) -> Tuple[str, ...]:
    """Comma-separated cell -> tuple of trimmed, non-empty parts."""
    if not value:
        return ()
    return tuple(p.strip() for p in value.split(",") if p.strip())


def _parse_hours(value: Optional[str]):
    """JSON like {"mon": {"open": "16:00", "close": "02:00"}}; None if unparseable."""
    if not value or not value.strip():
        return None
    try:
        raw = json.loads(value)
    except ValueError:
        logger.warning(f"Failed to parse hours: {value}")
        return None
    if not isinstance(raw, dict):
        logger.warning(f"Failed to parse hours: {value}")
        return None
    hours = []
    for day, span in raw.items():
        if isinstance(span, dict):
            hours.append((str(day), (str(span.get("open", "")), str(span.get("close", "")))))
    return tuple(hours)


def bar_from_row(row: Dict[str, str]) -> Optional[Bar]:
    """
    Map a bars-sheet record to a Bar.

    Returns None (and logs) when a required column is blank or the
    coordinates are missing/zero.
    """
    if any(not (row.get(col) or "").strip() for col in BAR_REQUIRED_COLUMNS):
        logger.warning(f"Skipping bar row due to missing required fields: {row}")
        return None

    location = Coordinates(
        latitude=_parse_float(row.get("Latitude")),
        longitude=_parse_float(row.get("Longitude")),
    )
    name = row["Name"].strip()
    if not location.latitude or not location.longitude:
        logger.warning(
            f"Bar {name} has invalid coordinates: {location.latitude}, {location.longitude}"
        )
        return None

    now = datetime.utcnow().isoformat() + "Z"
    return Bar(
        id=row["ID"].strip(),
        name=name,
        description=_blank_to_none(row.get("Description")),
        address=Address(
            street=(row.get("Street") or "").strip(),
            city=(row.get("City") or "").strip(),
            state=(row.get("State") or "").strip(),
            zip_code=(row.get("ZipCode") or "").strip(),
        ),
        location=location,
        phone=_blank_to_none(row.get("Phone")),
        website=_blank_to_none(row.get("Website")),
        menu_sheet_id=row["MenuSheetID"].strip(),
        active=(row.get("Active") or "").strip().lower() in ("true", "1"),
        hours=_parse_hours(row.get("Hours")),
        features=_parse_list(row.get("Features")) or None,
        image_url=_blank_to_none(row.get("ImageURL")),
        created_at=_blank_to_none(row.get("CreatedAt")) or now,
        updated_at=_blank_to_none(row.get("UpdatedAt")) or now,
    )


def drink_from_row(row: Dict[str, str]) -> Optional[Drink]:
    """Map a drinks-sheet record to a Drink; None if ID or Name is blank."""
    if any(not (row.get(col) or "").strip() for col in DRINK_REQUIRED_COLUMNS):
        logger.warning(f"Skipping drink row due to missing required fields: {row}")
        return None

    available = row.get("Available")
    return Drink(
        id=row["ID"].strip(),
        name=row["Name"].strip(),
        category=(row.get("Category") or "").strip().lower(),
        description=(row.get("Description") or "").strip(),
        ingredients=_parse_list(row.get("Ingredients")),
        abv=_parse_float(row.get("ABV")),
        flavor_profile=tuple(f.lower() for f in _parse_list(row.get("FlavorProfile"))),
        strength=(row.get("Strength") or "").strip().lower(),
        occasions=tuple(o.lower() for o in _parse_list(row.get("Occasions"))),
        serving_suggestions=_parse_list(row.get("ServingSuggestions")),
        image_url=(row.get("ImageURL") or "").strip(),
        glass_type=_blank_to_none(row.get("GlassType")),
        preparation=_blank_to_none(row.get("Preparation")),
        happy_hour=_parse_bool(row.get("HappyHour")),
        happy_hour_price=_blank_to_none(row.get("HappyHourPrice")),
        happy_hour_times=_blank_to_none(row.get("HappyHourTimes")),
        # Blank means on the menu
        available=True if not (available or "").strip() else _parse_bool(available),
    )


# Bar menu spreadsheets use snake_case headers, one tab per category
MENU_COLUMNS = {
    "id": "ID",
    "name": "Name",
    "description": "Description",
    "ingredients": "Ingredients",
    "abv": "ABV",
    "flavor_profile": "FlavorProfile",
    "strength": "Strength",
    "occasions": "Occasions",
    "serving_suggestions": "ServingSuggestions",
    "image_url": "ImageURL",
    "glass_type": "GlassType",
    "preparation": "Preparation",
    "happy_hour": "HappyHour",
    "happy_hour_price": "HappyHourPrice",
    "happy_hour_times": "HappyHourTimes",
}


def menu_drink_from_row(row: Dict[str, str], category: str) -> Optional[Drink]:
    """Map a row from a bar's menu tab; the tab decides the category."""
    record = {MENU_COLUMNS[k]: v for k, v in row.items() if k in MENU_COLUMNS}
    record["Category"] = category
    return drink_from_row(record)


def map_rows(rows: List[Dict[str, str]], mapper) -> List[Any]:
    """Apply a row mapper, dropping rows it rejects."""
    mapped = [mapper(row) for row in rows]
    return [m for m in mapped if m is not None]
