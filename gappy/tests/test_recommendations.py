from __future__ import annotations

from unittest.mock import patch

import pandas as pd
import pytest

from gappy.config import LLMConfig
from gappy.recommendations.data_store import get_places
from gappy.recommendations.models import Location
from gappy.recommendations.retrieval import (
    MAX_RESULTS,
    get_recommendations,
    haversine_distance,
    maps_url,
    radius_for_walking_tolerance,
)

SHIBUYA = Location(lat=35.6595, lng=139.7005)
NO_LLM = LLMConfig(api_key="", enabled=False)


def _places(rows) -> pd.DataFrame:
    df = pd.DataFrame(rows)
    df["types_list"] = df["types"].apply(lambda s: s.split("|"))
    for column in ("rating", "user_ratings_total", "price_level", "open_now"):
        if column not in df:
            df[column] = None
    df["vicinity"] = "Shibuya"
    return df


@pytest.mark.parametrize("tolerance, expected", [
    ("5", 400),
    ("10", 800),
    ("15", 1200),
    ("30", 5000),
    (None, 5000),
])
def test_radius_for_walking_tolerance(tolerance, expected):
    assert radius_for_walking_tolerance(tolerance) == expected


def test_haversine_distance():
    assert haversine_distance(35.0, 139.0, 35.0, 139.0) == 0
    # One degree of latitude is about 111 km.
    assert haversine_distance(35.0, 139.0, 36.0, 139.0) == pytest.approx(111_195, rel=1e-3)


def test_maps_url():
    assert maps_url(35.6595, 139.7005) == "https://www.google.com/maps/search/?api=1&query=35.6595,139.7005"


def test_bundled_places_load():
    df = get_places()
    assert len(df) > 0
    assert {"place_id", "lat", "lng", "types_list"} <= set(df.columns)
    assert df["place_id"].is_unique


def test_results_stay_within_radius_and_limit():
    response = get_recommendations("GRLP", SHIBUYA, walking_tolerance="10", llm_config=NO_LLM)
    assert response.status == "ready"
    assert 0 < len(response.items) <= MAX_RESULTS
    assert all(item.distance_m <= 800 for item in response.items)


def test_wider_radius_retry():
    places = _places([
        {"place_id": "near-ish", "name": "Near-ish", "types": "cafe", "lat": 35.6595 + 0.0045, "lng": 139.7005},
    ])
    # About 500 m away: outside the 400 m radius, inside 1.5x of it.
    response = get_recommendations("GRLP", SHIBUYA, walking_tolerance="5", places=places, llm_config=NO_LLM)
    assert [item.place_id for item in response.items] == ["near-ish"]


def test_nothing_in_range_is_empty():
    places = _places([
        {"place_id": "far", "name": "Far", "types": "cafe", "lat": 35.70, "lng": 139.70},
    ])
    response = get_recommendations("GRLP", SHIBUYA, walking_tolerance="5", places=places, llm_config=NO_LLM)
    assert response.status == "empty"
    assert response.items == []


def test_type_match_outranks_equal_rating():
    # SDLF favours museums.
    places = _places([
        {"place_id": "bar", "name": "Bar", "types": "bar", "rating": 4.0, "lat": 35.6595, "lng": 139.7005},
        {"place_id": "museum", "name": "Museum", "types": "museum", "rating": 4.0, "lat": 35.6595, "lng": 139.7005},
    ])
    response = get_recommendations("SDLF", SHIBUYA, places=places, llm_config=NO_LLM)
    assert [item.place_id for item in response.items] == ["museum", "bar"]


def test_closer_place_wins_on_equal_rating():
    places = _places([
        {"place_id": "far", "name": "Far", "types": "cafe", "rating": 4.0, "lat": 35.6595 + 0.02, "lng": 139.7005},
        {"place_id": "near", "name": "Near", "types": "cafe", "rating": 4.0, "lat": 35.6595, "lng": 139.7005},
    ])
    response = get_recommendations("GRLP", SHIBUYA, places=places, llm_config=NO_LLM)
    assert [item.place_id for item in response.items] == ["near", "far"]


@patch("gappy.recommendations.retrieval.rank_and_explain")
def test_llm_order_and_reasons_are_applied(mock_rank):
    places = _places([
        {"place_id": "a", "name": "A", "types": "cafe", "rating": 4.9, "lat": 35.6595, "lng": 139.7005},
        {"place_id": "b", "name": "B", "types": "cafe", "rating": 3.0, "lat": 35.6595, "lng": 139.7005},
        {"place_id": "c", "name": "C", "types": "cafe", "rating": 2.0, "lat": 35.6595, "lng": 139.7005},
    ])
    mock_rank.return_value = {"b": "Quiet corner seat.", "unknown": "Not a candidate."}

    response = get_recommendations("GRLP", SHIBUYA, places=places)

    assert [item.place_id for item in response.items] == ["b", "a", "c"]
    assert response.items[0].reason == "Quiet corner seat."
    assert response.items[1].reason is None
