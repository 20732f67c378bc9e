from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

LocalQuizRecordStatus = Literal["pending", "synced", "failed"]
QuizResultStatus = Literal["missing", "pending", "synced", "failed", "stale"]


class InvalidTravelTypeError(ValueError):
    """A travel type without a usable code reached normalization."""


class CamelModel(BaseModel):
    """Base for models persisted or sent over the wire with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StoredTravelType(CamelModel):
    travel_type_code: str | None = None
    travel_type_name: str | None = None
    travel_type_emoji: str | None = None
    travel_type_description: str | None = None
    travel_type_short_description: str | None = None
    location_lat: float | None = None
    location_lng: float | None = None
    location_permission: bool | None = None
    current_location: str | None = None


class QuizAnswers(CamelModel):
    """Quiz form answers. Only ``walkingTolerance`` is read; the rest passes through."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    walking_tolerance: str | None = None

    @field_validator("walking_tolerance", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class StoredQuizResult(CamelModel):
    travel_type: StoredTravelType
    places: list[dict[str, Any]] = Field(default_factory=list)
    answers: QuizAnswers | None = None
    timestamp: int | None = None


class QuizStatusMeta(CamelModel):
    version: Literal[1] = 1
    status: LocalQuizRecordStatus = "pending"
    last_synced_at: int | None = None
    last_attempt_at: int | None = None
    error: str | None = None
    retriable: bool = True


class QuizResultState(CamelModel):
    status: QuizResultStatus
    record: StoredQuizResult | None = None
    last_synced_at: int | None = None
    last_attempt_at: int | None = None
    error: str | None = None
    retriable: bool | None = None


class PendingQuizResultRecord(CamelModel):
    version: Literal[1] = 1
    stored_at: int
    result: StoredQuizResult
    account_id: str | None = None


class QuizSyncResult(CamelModel):
    success: bool
    status: int | None = None
    message: str | None = None
    retriable: bool | None = None
