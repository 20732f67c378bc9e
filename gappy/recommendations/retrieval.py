from __future__ import annotations

import logging
import time
from typing import Any

import numpy as np
import pandas as pd

from ..config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.groq_client import rank_and_explain
from ..quiz.travel_types import get_travel_type_info
from .data_store import get_places
from .models import Location, Place, PlaceGeometry, RecommendResponse

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0
WALKING_RADIUS_M = {"5": 400, "10": 800, "15": 1200}
DEFAULT_RADIUS_M = 5000
WIDER_RADIUS_FACTOR = 1.5
MAX_RESULTS = 20

RATING_WEIGHT = 0.7
DISTANCE_WEIGHT = 0.3  # per km
TYPE_MATCH_WEIGHT = 1.0


def radius_for_walking_tolerance(walking_tolerance: str | None) -> int:
    """Map the quiz's walking answer (minutes) to a search radius in meters."""
    return WALKING_RADIUS_M.get(walking_tolerance or "", DEFAULT_RADIUS_M)


def haversine_distance(lat1: float, lng1: float, lat2: Any, lng2: Any) -> Any:
    """Great-circle distance in meters. ``lat2``/``lng2`` may be arrays."""
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = np.radians(lng2) - np.radians(lng1)
    a = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * np.arcsin(np.sqrt(a))


def maps_url(lat: float, lng: float) -> str:
    return f"https://www.google.com/maps/search/?api=1&query={lat},{lng}"


def _within_radius(df: pd.DataFrame, location: Location, radius_m: float) -> pd.DataFrame:
    distances = haversine_distance(location.lat, location.lng, df["lat"].to_numpy(), df["lng"].to_numpy())
    candidates = df.assign(distance_m=distances)
    return candidates.loc[candidates["distance_m"] <= radius_m].copy()


def _score(candidates: pd.DataFrame, recommended_types: tuple[str, ...]) -> pd.Series:
    wanted = set(recommended_types)
    rating = candidates["rating"].fillna(0.0).astype(float)
    distance_km = candidates["distance_m"] / 1000.0
    if wanted:
        type_match = candidates["types_list"].apply(lambda ts: len(wanted & set(ts)) / len(wanted))
    else:
        type_match = pd.Series(0.0, index=candidates.index)
    return RATING_WEIGHT * rating - DISTANCE_WEIGHT * distance_km + TYPE_MATCH_WEIGHT * type_match


def _row_to_dict(row: pd.Series) -> dict[str, Any]:
    return {
        "place_id": str(row["place_id"]),
        "name": row["name"],
        "vicinity": row["vicinity"],
        "types": row["types_list"],
        "rating": float(row["rating"]) if pd.notna(row["rating"]) else None,
        "user_ratings_total": (
            int(row["user_ratings_total"]) if pd.notna(row["user_ratings_total"]) else None
        ),
        "price_level": int(row["price_level"]) if pd.notna(row["price_level"]) else None,
        "distance_m": round(float(row["distance_m"]), 1),
        "open_now": bool(row["open_now"]) if pd.notna(row["open_now"]) else None,
        "lat": float(row["lat"]),
        "lng": float(row["lng"]),
    }


def get_recommendations(
    travel_type_code: str,
    location: Location,
    walking_tolerance: str | None = None,
    places: pd.DataFrame | None = None,
    llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> RecommendResponse:
    start_time = time.time()
    info = get_travel_type_info(travel_type_code)
    df = places if places is not None else get_places()

    # --- Radius filter ---
    radius_m = radius_for_walking_tolerance(walking_tolerance)
    candidates = _within_radius(df, location, radius_m)
    if candidates.empty:
        logger.info("No places within %sm, retrying with wider radius", radius_m)
        candidates = _within_radius(df, location, radius_m * WIDER_RADIUS_FACTOR)

    if candidates.empty:
        return RecommendResponse(status="empty", items=[])

    # --- Scoring ---
    candidates["_score"] = _score(candidates, info.recommended_types)
    top = candidates.sort_values("_score", ascending=False, kind="stable").head(MAX_RESULTS)
    row_by_id: dict[str, dict[str, Any]] = {}
    for _, row in top.iterrows():
        row_by_id[str(row["place_id"])] = _row_to_dict(row)

    # --- LLM re-ranking & explanation ---
    llm_results = rank_and_explain(info, list(row_by_id.values()), config=llm_config)

    # If LLM returned results, use its ordering; otherwise keep heuristic order
    if llm_results:
        ordered_ids = [pid for pid in llm_results if pid in row_by_id]
        for pid in row_by_id:
            if pid not in llm_results:
                ordered_ids.append(pid)
    else:
        ordered_ids = list(row_by_id.keys())

    items: list[Place] = []
    for pid in ordered_ids:
        data = dict(row_by_id[pid])
        lat, lng = data.pop("lat"), data.pop("lng")
        items.append(Place(
            **data,
            maps_url=maps_url(lat, lng),
            geometry=PlaceGeometry(location=Location(lat=lat, lng=lng)),
            reason=llm_results.get(pid),
        ))

    elapsed_ms = round((time.time() - start_time) * 1000, 1)
    logger.info(
        "Recommended %d places for %s within %sm in %sms",
        len(items), travel_type_code, radius_m, elapsed_ms,
    )
    return RecommendResponse(status="ready", items=items)
