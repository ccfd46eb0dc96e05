"""
Bar Menu API - Main FastAPI Application
Bars and drinks are read from Google Sheets through a read-through cache;
likes are kept in a local SQL database
"""
import hmac
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Header, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app import crud
from app.cache import (
    CacheManager,
    InvalidationFailure,
    UpstreamFetchFailure,
    get_cache_manager,
)
from app.catalog import (
    BarDataService,
    BarMenuService,
    BarUnavailable,
    DrinkDataService,
    filter_drinks,
    get_bar_data_service,
    get_bar_menu_service,
    get_drink_data_service,
    is_valid_coordinates,
)
from app.catalog.location import MAX_DISTANCE_MILES, MAX_LIMIT
from app.db import get_db, init_db
from app.schemas import (
    ClearCacheHealth,
    ClearCacheResponse,
    LikeToggleRequest,
    LikeToggleResponse,
    NearbyBarsRequest,
)
from config.settings import Settings, settings

logger = logging.getLogger("api")

# Version tracking
APP_VERSION = "v0.3.0"
APP_NAME = "Bar Menu API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title=APP_NAME,
    description="Bars and drinks from Google Sheets, with on-demand cache clearing",
    version=APP_VERSION,
    lifespan=lifespan,
)


def get_settings() -> Settings:
    return settings


def _now_iso() -> str:
    return datetime.utcnow().isoformat() + "Z"


def _split_csv(value: Optional[str]):
    if not value:
        return None
    return [v for v in value.split(",") if v.strip()]


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "source": "google-sheets"}


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "full": f"{APP_NAME} {APP_VERSION}",
    }


@app.get("/cache/stats")
def cache_stats(
    manager: CacheManager = Depends(get_cache_manager),
    bars: BarDataService = Depends(get_bar_data_service),
    drinks: DrinkDataService = Depends(get_drink_data_service),
):
    """Get cache statistics."""
    return {
        "cache": manager.get_stats(),
        "bars": bars.get_cache_stats(),
        "drinks": drinks.get_cache_stats(),
    }


# =============================================================================
# BARS
# =============================================================================

@app.get("/bars")
def list_bars(
    active: Optional[str] = Query(default=None, description="'false' lists every bar"),
    service: BarDataService = Depends(get_bar_data_service),
):
    """
    List bars.

    Returns {success, bars, count}; upstream failures are a 500 with
    {success: false, error}.
    """
    # Anything but the literal "false" keeps the active-only default
    active_only = active != "false"
    logger.info(f"API: Getting {'active' if active_only else 'all'} bars")
    try:
        if active_only:
            bars = service.get_active_bars()
            logger.info(f"API: Returned {len(bars)} active bars")
        else:
            bars, source = service.get_all_bars()
            logger.info(f"API: Returned {len(bars)} bars ({source})")
    except UpstreamFetchFailure as e:
        logger.error(f"API Error in /bars: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Failed to fetch bars"},
        )

    return {
        "success": True,
        "bars": [bar.to_dict() for bar in bars],
        "count": len(bars),
    }


@app.post("/bars/nearby")
def nearby_bars(
    body: NearbyBarsRequest,
    service: BarDataService = Depends(get_bar_data_service),
):
    """Bars within max_distance_miles of a point, closest first."""
    if not is_valid_coordinates(body.latitude, body.longitude):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Invalid coordinates: must be valid latitude (-90 to 90) "
                         "and longitude (-180 to 180)",
            },
        )
    if not 0 < body.max_distance_miles <= MAX_DISTANCE_MILES:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": f"Invalid max_distance_miles: must be between 0 and {MAX_DISTANCE_MILES:g}",
            },
        )
    if not 0 < body.limit <= MAX_LIMIT:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": f"Invalid limit: must be between 1 and {MAX_LIMIT}"},
        )

    try:
        nearby = service.find_nearby_bars(
            body.latitude,
            body.longitude,
            max_distance_miles=body.max_distance_miles,
            limit=body.limit,
            active_only=body.active_only,
        )
    except UpstreamFetchFailure as e:
        logger.error(f"API Error in /bars/nearby: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Failed to find nearby bars"},
        )

    return {
        "success": True,
        "bars": [b.to_dict() for b in nearby],
        "count": len(nearby),
    }


@app.get("/bars/{bar_id}/menu")
def get_bar_menu(
    bar_id: str,
    category: Optional[str] = Query(default=None, description="Single category"),
    menus: BarMenuService = Depends(get_bar_menu_service),
):
    """
    A bar's drink menu, read from the bar's own spreadsheet.

    404 for unknown or inactive bars; 500 if the menu cannot be read.
    """
    logger.info(f"API: Getting menu for bar {bar_id}" + (f" (category: {category})" if category else ""))
    try:
        bar, drinks, source = menus.get_bar_menu(bar_id)
    except BarUnavailable as e:
        logger.info(f"API: Bar {bar_id} unavailable: {e}")
        return JSONResponse(status_code=404, content={"success": False, "error": str(e)})
    except UpstreamFetchFailure as e:
        logger.error(f"Failed to load menu for bar {bar_id}: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to load bar menu"},
        )

    if category:
        drinks = filter_drinks(drinks, categories=[category])

    return {
        "success": True,
        "drinks": [d.to_dict() for d in drinks],
        "bar": {"id": bar.id, "name": bar.name, "menu_sheet_id": bar.menu_sheet_id},
        "count": len(drinks),
        "source": source,
    }


@app.get("/bars/{bar_id}")
def get_bar(bar_id: str, service: BarDataService = Depends(get_bar_data_service)):
    """Get a single bar by ID."""
    try:
        bar = service.get_bar_by_id(bar_id)
    except UpstreamFetchFailure as e:
        logger.error(f"API Error in /bars/{bar_id}: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Failed to fetch bar"},
        )

    if bar is None:
        logger.info(f"API: Bar {bar_id} not found")
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Bar not found"},
        )
    return {"success": True, "bar": bar.to_dict()}


# =============================================================================
# DRINKS
# =============================================================================

@app.get("/drinks")
def list_drinks(
    id: Optional[str] = Query(default=None, description="Return a single drink"),
    category: Optional[str] = Query(default=None, description="Single category"),
    categories: Optional[str] = Query(default=None, description="Comma-separated categories"),
    flavors: Optional[str] = Query(default=None, description="Comma-separated flavor profiles"),
    strength: Optional[str] = Query(default=None, description="Comma-separated strengths"),
    occasions: Optional[str] = Query(default=None, description="Comma-separated occasions"),
    search: Optional[str] = Query(default=None, description="Text search"),
    bar_id: Optional[str] = Query(default=None, description="Use this bar's menu"),
    service: DrinkDataService = Depends(get_drink_data_service),
    menus: BarMenuService = Depends(get_bar_menu_service),
):
    """
    List available drinks, optionally filtered, or fetch one by ID.

    With bar_id the drinks come from that bar's menu instead of the
    default drinks sheet.
    """
    try:
        if id:
            drink = service.get_drink_by_id(id)
            if drink is None:
                return JSONResponse(status_code=404, content={"error": "Drink not found"})
            return drink.to_dict()

        if bar_id:
            try:
                _, drinks, _ = menus.get_bar_menu(bar_id)
            except BarUnavailable as e:
                return JSONResponse(status_code=404, content={"error": str(e)})
            except UpstreamFetchFailure as e:
                logger.error(f"Failed to load menu for bar {bar_id}: {e}")
                return JSONResponse(status_code=500, content={"error": "Failed to load bar menu"})
            if category:
                drinks = filter_drinks(drinks, categories=[category])
        elif category:
            drinks = service.get_drinks_by_category(category)
        else:
            drinks = service.get_active_drinks()
    except UpstreamFetchFailure as e:
        logger.error(f"Drinks API error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch drinks"})

    drinks = filter_drinks(
        drinks,
        categories=_split_csv(categories),
        flavors=_split_csv(flavors),
        strength=_split_csv(strength),
        occasions=_split_csv(occasions),
        search=search,
    )
    return {"drinks": [d.to_dict() for d in drinks], "total": len(drinks)}


# =============================================================================
# ADMIN
# =============================================================================

@app.post("/admin/clear-cache", response_model=ClearCacheResponse)
def clear_cache(
    authorization: Optional[str] = Header(default=None),
    manager: CacheManager = Depends(get_cache_manager),
    config: Settings = Depends(get_settings),
):
    """
    Clear every cached bar and drink view (sheet-edit webhook).

    When a shared secret is configured the caller must send
    ``Authorization: Bearer <secret>``.
    """
    expected_secret = config.sheets_webhook_secret
    if expected_secret:
        expected = f"Bearer {expected_secret}".encode("utf-8")
        received = (authorization or "").encode("utf-8")
        if not hmac.compare_digest(received, expected):
            logger.warning("Rejected cache clear: bad or missing bearer token")
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    try:
        removed = manager.clear()
    except InvalidationFailure as e:
        logger.error(f"Failed to clear cache: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(e)},
        )

    logger.info(f"Cache cleared manually ({removed} entries)")
    return {
        "success": True,
        "message": "Cache cleared successfully",
        "timestamp": _now_iso(),
    }


@app.get("/admin/clear-cache", response_model=ClearCacheHealth)
def clear_cache_health():
    """Liveness check for the clear-cache webhook."""
    return {
        "status": "healthy",
        "endpoint": "clear-cache",
        "timestamp": _now_iso(),
    }


# =============================================================================
# LIKES
# =============================================================================

@app.post("/likes", response_model=LikeToggleResponse)
def toggle_like(body: LikeToggleRequest, db: Session = Depends(get_db)):
    """Toggle a session's like on a drink and return the new count."""
    if not body.drink_id or not body.session_id:
        return JSONResponse(status_code=400, content={"error": "Missing drinkId or sessionId"})

    result = crud.toggle_like(db, body.drink_id, body.session_id)
    if not result.success:
        return JSONResponse(status_code=500, content={"error": "Failed to update like status"})

    try:
        count = crud.get_drink_likes(db, body.drink_id)
    except crud.LikeStoreError as e:
        logger.error(f"Error in likes API: {e}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return {"success": True, "likeCount": count, "liked": result.liked}


@app.get("/likes")
def get_likes(
    drinkId: Optional[str] = Query(default=None),
    sessionId: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    """
    Like status for one drink (drinkId + sessionId) or all likes of a session.
    """
    try:
        if drinkId and sessionId:
            count = crud.get_drink_likes(db, drinkId)
            liked = drinkId in crud.get_user_likes(db, sessionId)
            return {"drinkId": drinkId, "likeCount": count, "liked": liked}
        if sessionId:
            return {"likedDrinks": crud.get_user_likes(db, sessionId)}
    except crud.LikeStoreError as e:
        logger.error(f"Error in likes GET API: {e}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return JSONResponse(status_code=400, content={"error": "Missing required parameters"})
