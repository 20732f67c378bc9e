"""
Travel-type quiz results on the client.

Responsibilities:
- Describe the sixteen travel types and fill in their display fields.
- Persist the latest quiz result per account with its sync status.
- Notify listeners in-process when the stored result changes.
"""
from .client_state import QUIZ_RESULT_TTL_MS, QuizClientState, normalize_travel_type
from .events import QUIZ_RESULT_EVENT, QuizResultEvents
from .models import (
    InvalidTravelTypeError,
    QuizAnswers,
    QuizResultState,
    QuizStatusMeta,
    QuizSyncResult,
    StoredQuizResult,
    StoredTravelType,
)

__all__ = [
    "QUIZ_RESULT_EVENT",
    "QUIZ_RESULT_TTL_MS",
    "InvalidTravelTypeError",
    "QuizAnswers",
    "QuizClientState",
    "QuizResultEvents",
    "QuizResultState",
    "QuizStatusMeta",
    "QuizSyncResult",
    "StoredQuizResult",
    "StoredTravelType",
    "normalize_travel_type",
]
