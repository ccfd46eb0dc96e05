"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel, Field
from typing import Optional


# ===== ADMIN SCHEMAS =====

class ClearCacheResponse(BaseModel):
    """POST /admin/clear-cache"""
    success: bool
    message: str
    timestamp: str


class ClearCacheHealth(BaseModel):
    """GET /admin/clear-cache"""
    status: str
    endpoint: str
    timestamp: str


# ===== BAR SCHEMAS =====

class NearbyBarsRequest(BaseModel):
    """POST /bars/nearby; coordinates are range-checked in the route so a bad value is a 400"""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    max_distance_miles: float = 15
    limit: int = 10
    active_only: bool = True


# ===== LIKE SCHEMAS =====

class LikeToggleRequest(BaseModel):
    """POST /likes body; both fields are checked in the route so a gap is a 400"""
    drink_id: Optional[str] = Field(default=None, alias="drinkId")
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    model_config = {"populate_by_name": True}


class LikeToggleResponse(BaseModel):
    success: bool
    likeCount: int
    liked: bool

