from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException

from .accounts.models import (
    QuizStatePayload,
    SessionResponse,
    StateSyncRequest,
    StateSyncResponse,
)
from .accounts.store import (
    ensure_quiz_completed,
    get_linked_account,
    get_linked_user,
    get_quiz_state,
    link_account,
    merge_quiz_state,
)
from .auth.dependencies import get_bearer_token, require_account, require_bearer_token
from .auth.tokens import create_account_id, sign_account_token
from .quiz.client_state import normalize_travel_type
from .quiz.models import InvalidTravelTypeError
from .quiz.travel_types import is_valid_travel_type_code
from .recommendations.models import RecommendRequest, RecommendResponse
from .recommendations.retrieval import get_recommendations

logger = logging.getLogger(__name__)

app = FastAPI(title="Gappy Account API", version="1.0.0")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _travel_type_from_payload(payload: Any) -> dict[str, Any] | None:
    """Pull travel-type fields out of a synced resource, nested or flat."""
    if not isinstance(payload, dict):
        return None
    nested = payload.get("travelType")
    travel_type = nested if isinstance(nested, dict) else payload
    code = travel_type.get("travelTypeCode") or payload.get("travelTypeCode")
    if not code:
        return None
    return {
        "travelTypeCode": code,
        "travelTypeName": travel_type.get("travelTypeName") or payload.get("travelTypeName"),
        "travelTypeEmoji": travel_type.get("travelTypeEmoji") or payload.get("travelTypeEmoji"),
        "travelTypeDescription": (
            travel_type.get("travelTypeDescription") or payload.get("travelTypeDescription")
        ),
    }


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/account/session", response_model=SessionResponse)
def create_session() -> SessionResponse:
    record = sign_account_token(create_account_id())
    return SessionResponse(
        account_id=record.account_id,
        token=record.token,
        issued_at=record.issued_at,
        expires_at=record.expires_at,
    )


# ── Account endpoints ────────────────────────────────────────────────────


@app.post("/api/account/quiz-state")
def save_quiz_state(
    body: QuizStatePayload,
    account_id: str = Depends(require_account),
) -> dict:
    try:
        travel_type = normalize_travel_type(body.travel_type)
    except InvalidTravelTypeError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    timestamp = body.timestamp or _now_ms()
    state = merge_quiz_state(account_id, {
        "completed": True,
        "travelType": travel_type.to_wire(),
        "answers": body.answers.to_wire() if body.answers is not None else None,
        "timestamp": timestamp,
        "recommendation": {"places": body.places, "timestamp": timestamp},
    })
    return {"status": "ok", "quizState": state}


@app.get("/api/account/quiz-state")
def read_quiz_state(account_id: str = Depends(require_account)) -> dict:
    state = get_quiz_state(account_id)
    if not state:
        raise HTTPException(status_code=404, detail="Quiz state not found")
    return {"quizState": state}


@app.post("/api/account/state-sync", response_model=StateSyncResponse)
def state_sync(
    body: StateSyncRequest,
    account_id: str = Depends(require_account),
    user_id: str | None = Depends(get_bearer_token),
) -> StateSyncResponse:
    resources = body.resources
    if not isinstance(resources, dict):
        raise HTTPException(status_code=400, detail="Missing resources payload")

    # The bearer token stands in for the identity provider's user id.
    linked_elsewhere = False
    if user_id:
        linked_account = get_linked_account(user_id)
        linked_elsewhere = linked_account is not None and linked_account != account_id

    existing_user = get_linked_user(account_id)
    if existing_user is None:
        if user_id and not linked_elsewhere:
            link_account(account_id, user_id)
        elif linked_elsewhere:
            logger.warning("User already linked to another account, skipping sync for %s", account_id)
            raise HTTPException(status_code=409, detail="Account already linked to a different user")
    elif user_id and not linked_elsewhere and existing_user != user_id:
        logger.error("Conflicting user linkage for account %s", account_id)
        raise HTTPException(status_code=409, detail="Account already linked to a different user")

    updates: dict[str, Any] = {}
    synced: list[str] = []

    quiz_payload = resources.get("quiz_results")
    if isinstance(quiz_payload, dict) and quiz_payload:
        travel_type = _travel_type_from_payload(quiz_payload)
        updates["completed"] = travel_type is not None
        updates["travelType"] = travel_type
        updates["timestamp"] = quiz_payload.get("timestamp") or _now_ms()
        synced.append("quiz_results")

    recommendation = resources.get("recommendation")
    if isinstance(recommendation, dict) and recommendation:
        updates["recommendation"] = {
            "places": recommendation.get("places") or [],
            "timestamp": recommendation.get("timestamp") or _now_ms(),
        }
        travel_type = _travel_type_from_payload(recommendation)
        if travel_type:
            updates["travelType"] = travel_type
            updates["completed"] = True
        if isinstance(recommendation.get("answers"), dict):
            updates["answers"] = recommendation["answers"]
        synced.append("recommendation")

    if not synced:
        raise HTTPException(status_code=400, detail="No recognized resources to sync")

    merge_quiz_state(account_id, updates)
    return StateSyncResponse(synced=synced)


# ── Recommendation endpoint ──────────────────────────────────────────────


@app.post("/api/recommend", response_model=RecommendResponse)
def recommend(
    body: RecommendRequest,
    account_id: str = Depends(require_account),
    _access_token: str = Depends(require_bearer_token),
) -> RecommendResponse:
    quiz_state = ensure_quiz_completed(account_id)
    if quiz_state is None:
        raise HTTPException(status_code=403, detail="Quiz is not completed")

    if body.location is None or not body.travel_type_code:
        raise HTTPException(
            status_code=400,
            detail="Invalid input: location and travelTypeCode are required",
        )
    if not is_valid_travel_type_code(body.travel_type_code):
        raise HTTPException(status_code=400, detail="Invalid travel type code")

    answers = quiz_state.get("answers") or {}
    walking_tolerance = answers.get("walkingTolerance") if isinstance(answers, dict) else None

    return get_recommendations(
        body.travel_type_code,
        body.location,
        walking_tolerance=str(walking_tolerance) if walking_tolerance is not None else None,
    )
