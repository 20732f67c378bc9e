from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..quiz.models import CamelModel, QuizAnswers, StoredTravelType


class SessionResponse(CamelModel):
    account_id: str
    token: str
    issued_at: int
    expires_at: int


class QuizStatePayload(CamelModel):
    travel_type: StoredTravelType
    answers: QuizAnswers | None = None
    places: list[dict[str, Any]] = Field(default_factory=list)
    timestamp: int | None = None


class StateSyncRequest(BaseModel):
    resources: dict[str, Any] | None = None


class StateSyncResponse(BaseModel):
    synced: list[str]
