"""
Shared fixtures: a fake Sheets client, an isolated cache manager, services
wired to both, an in-memory likes database, and a TestClient with the
FastAPI dependencies overridden.
"""
import threading

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.cache import CacheManager, UpstreamFetchFailure
from app.catalog import (
    BarDataService,
    BarMenuService,
    DrinkDataService,
    get_bar_data_service,
    get_bar_menu_service,
    get_drink_data_service,
)
from app.cache import get_cache_manager
from app.db import get_db, init_db, make_engine
from app.main import app, get_settings
from app.sheets_client import SheetRangeNotFound
from config.settings import Settings


BAR_HEADER = [
    "ID", "Name", "Description", "Street", "City", "State", "ZipCode",
    "Latitude", "Longitude", "Phone", "Website", "MenuSheetID", "Active",
    "Hours", "Features", "ImageURL", "CreatedAt", "UpdatedAt",
]

DRINK_HEADER = [
    "ID", "Name", "Category", "Description", "Ingredients", "ABV",
    "FlavorProfile", "Strength", "Occasions", "ImageURL", "Available",
]

MENU_HEADER = ["id", "name", "description", "ingredients", "abv", "flavor_profile", "strength"]


def bar_row(bar_id, name, active="TRUE", lat="40.7", lng="-74.0", menu="menu-1", **extra):
    row = {
        "ID": bar_id, "Name": name, "Latitude": lat, "Longitude": lng,
        "MenuSheetID": menu, "Active": active, "City": "New York",
    }
    row.update(extra)
    return [row.get(col, "") for col in BAR_HEADER]


def drink_row(drink_id, name, category="cocktail", available="", **extra):
    row = {"ID": drink_id, "Name": name, "Category": category, "Available": available}
    row.update(extra)
    return [row.get(col, "") for col in DRINK_HEADER]


class FakeSheetsClient:
    """
    Stands in for SheetsClient; returns canned rows per spreadsheet id.

    A spreadsheet given as a dict is split into tabs; asking for a tab it
    does not have raises SheetRangeNotFound like a real HTTP 400.
    """

    def __init__(self, sheets=None):
        self.sheets = sheets or {}
        self.calls = 0
        self.error = None
        self.gate = None  # threading.Event to hold fetches open
        self._lock = threading.Lock()

    def fetch_values(self, spreadsheet_id, cell_range):
        with self._lock:
            self.calls += 1
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        sheet = self.sheets.get(spreadsheet_id, [])
        if isinstance(sheet, dict):
            tab = cell_range.split("!")[0]
            if tab not in sheet:
                raise SheetRangeNotFound(f"HTTP 400: Unable to parse range: {cell_range}")
            sheet = sheet[tab]
        return [list(r) for r in sheet]


@pytest.fixture
def sheets():
    return FakeSheetsClient({
        "bars-sheet": [
            BAR_HEADER,
            bar_row("1", "A", active="TRUE"),
            bar_row("2", "B", active="FALSE"),
        ],
        "drinks-sheet": [
            DRINK_HEADER,
            drink_row("d1", "Negroni", category="Cocktail", FlavorProfile="bitter, herbal",
                      Strength="strong", Ingredients="gin, campari, vermouth"),
            drink_row("d2", "Pilsner", category="beer", FlavorProfile="refreshing",
                      Strength="light", Occasions="sports, casual"),
            drink_row("d3", "Old Stock", category="beer", available="false"),
        ],
        "menu-1": {
            "Beer": [
                MENU_HEADER,
                ["m1", "House Lager", "Crisp", "barley, hops", "4.8", "smooth", "light"],
            ],
            "Cocktail": [
                MENU_HEADER,
                ["m2", "Old Fashioned", "Stirred", "bourbon, bitters", "32", "bitter", "strong"],
                ["", "Nameless", "", "", "", "", ""],
            ],
        },
    })


@pytest.fixture
def manager():
    return CacheManager(coalesce_timeout=5.0)


@pytest.fixture
def bar_service(sheets, manager):
    return BarDataService(
        client=sheets, spreadsheet_id="bars-sheet", cell_range="bars!A:R",
        ttl_seconds=300, manager=manager,
    )


@pytest.fixture
def drink_service(sheets, manager):
    return DrinkDataService(
        client=sheets, spreadsheet_id="drinks-sheet", cell_range="drinks!A:Z",
        ttl_seconds=300, manager=manager,
    )


@pytest.fixture
def menu_service(sheets, bar_service, manager):
    return BarMenuService(bars=bar_service, client=sheets, ttl_seconds=300, manager=manager)


@pytest.fixture
def db_session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(db_session_factory):
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_settings():
    return Settings(sheets_webhook_secret=None)


@pytest.fixture
def client(manager, bar_service, drink_service, menu_service, db_session_factory, test_settings):
    def override_get_db():
        session = db_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_cache_manager] = lambda: manager
    app.dependency_overrides[get_bar_data_service] = lambda: bar_service
    app.dependency_overrides[get_drink_data_service] = lambda: drink_service
    app.dependency_overrides[get_bar_menu_service] = lambda: menu_service
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def failing(sheets):
    """Make every upstream fetch fail."""
    sheets.error = UpstreamFetchFailure("HTTP 503: Service Unavailable")
    return sheets
