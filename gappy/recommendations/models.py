from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from ..quiz.models import CamelModel

RecommendationStatus = Literal["idle", "loading", "ready", "empty", "error"]


class RecommendationState(CamelModel):
    status: RecommendationStatus = "idle"
    places: list[dict[str, Any]] = Field(default_factory=list)
    updated_at: int | None = None
    error: str | None = None


# ── Backend wire models ──────────────────────────────────────────────────


class Location(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class RecommendRequest(CamelModel):
    travel_type_code: str | None = None
    location: Location | None = None


class PlaceGeometry(BaseModel):
    location: Location


class Place(BaseModel):
    place_id: str
    name: str
    vicinity: str = ""
    types: list[str] = Field(default_factory=list)
    rating: float | None = None
    user_ratings_total: int | None = None
    price_level: int | None = None
    distance_m: float
    open_now: bool | None = None
    maps_url: str
    geometry: PlaceGeometry
    reason: str | None = None


class RecommendResponse(BaseModel):
    status: Literal["ready", "empty"]
    items: list[Place]
