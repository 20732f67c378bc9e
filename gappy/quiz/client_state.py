from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from ..storage import ACCOUNT_STORAGE_KEYS, AccountStorage
from .events import QuizResultEvents
from .models import (
    InvalidTravelTypeError,
    LocalQuizRecordStatus,
    PendingQuizResultRecord,
    QuizAnswers,
    QuizResultState,
    QuizStatusMeta,
    QuizSyncResult,
    StoredQuizResult,
    StoredTravelType,
)
from .travel_types import get_travel_type_info

logger = logging.getLogger(__name__)

QUIZ_RESULT_TTL_MS = 1000 * 60 * 60 * 24 * 30  # 30 days
PENDING_QUIZ_RESULT_KEY = "quiz/pending-result"
QUIZ_STATE_ENDPOINT = "/api/account/quiz-state"

_KEYS = ACCOUNT_STORAGE_KEYS


def normalize_travel_type(travel_type: StoredTravelType) -> StoredTravelType:
    """Fill missing display fields from the catalogue.

    Raises ``InvalidTravelTypeError`` when the code is missing or unknown.
    """
    code = travel_type.travel_type_code
    if not code:
        raise InvalidTravelTypeError("Missing travelTypeCode")
    try:
        info = get_travel_type_info(code)
    except KeyError:
        raise InvalidTravelTypeError(f"Unknown travelTypeCode: {code}") from None

    return travel_type.model_copy(update={
        "travel_type_name": travel_type.travel_type_name or info.name,
        "travel_type_emoji": travel_type.travel_type_emoji or info.emoji,
        "travel_type_description": travel_type.travel_type_description or info.description,
        "travel_type_short_description": (
            travel_type.travel_type_short_description or info.short_description
        ),
    })


def _coerce_result(result: StoredQuizResult | dict[str, Any]) -> StoredQuizResult:
    if isinstance(result, StoredQuizResult):
        return result
    return StoredQuizResult.model_validate(result)


def _should_attempt_sync(state: QuizResultState, force: bool) -> bool:
    if force:
        return state.status != "missing"
    if state.status == "pending":
        return True
    if state.status == "failed":
        return state.retriable is not False
    return False


class QuizClientState:
    def __init__(
        self,
        storage: AccountStorage,
        events: QuizResultEvents | None = None,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage
        self.events = events or QuizResultEvents()
        self.http = http
        self._clock = clock
        self._in_flight_syncs: dict[str, asyncio.Task] = {}

    # ── Helpers ──────────────────────────────────────────────────────────

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def is_fresh(self, timestamp: int | None) -> bool:
        if not timestamp:
            return False
        return self.now_ms() - timestamp < QUIZ_RESULT_TTL_MS

    def normalize_quiz_result(self, result: StoredQuizResult | dict[str, Any]) -> StoredQuizResult:
        result = _coerce_result(result)
        return StoredQuizResult(
            travel_type=normalize_travel_type(result.travel_type),
            places=list(result.places or []),
            answers=result.answers,
            timestamp=result.timestamp or self.now_ms(),
        )

    def _read_status_meta(self, account_id: str) -> QuizStatusMeta:
        stored = self.storage.get_json(account_id, _KEYS.QUIZ_STATUS)
        # Results written before status tracking existed count as synced.
        if not isinstance(stored, dict):
            return QuizStatusMeta(status="synced")
        data = {**stored, "version": 1}
        if not data.get("status"):
            data["status"] = "synced"
        try:
            return QuizStatusMeta.model_validate(data)
        except ValidationError:
            logger.warning("Malformed quiz status meta for account %s", account_id, exc_info=True)
            return QuizStatusMeta(status="synced")

    def _write_status_meta(self, account_id: str, meta: QuizStatusMeta) -> None:
        self.storage.set_json(account_id, _KEYS.QUIZ_STATUS, meta.to_wire())

    # ── Local persistence ────────────────────────────────────────────────

    def persist_quiz_result_local(
        self,
        account_id: str | None,
        result: StoredQuizResult | dict[str, Any],
        *,
        status: LocalQuizRecordStatus = "pending",
        last_synced_at: int | None = None,
        last_attempt_at: int | None = None,
        error: str | None = None,
        retriable: bool = True,
        emit_event: bool = True,
    ) -> bool:
        """
        Store ``result`` under ``account_id`` together with its derived views.

        Returns ``False`` when there is no account, or when storage refuses one
        of the writes. A travel type without a valid code raises
        ``InvalidTravelTypeError``.
        """
        if not account_id:
            return False

        normalized = self.normalize_quiz_result(result)
        travel_type = normalized.travel_type
        meta = QuizStatusMeta(
            status=status,
            last_synced_at=last_synced_at,
            last_attempt_at=last_attempt_at,
            error=error,
            retriable=retriable,
        )

        writes = [(_KEYS.RECOMMENDATION, normalized.to_wire())]
        if normalized.answers is not None:
            writes.append((_KEYS.QUIZ_FORM, normalized.answers.to_wire()))
        writes.append((_KEYS.QUIZ_PAYLOAD, {
            "travelTypeCode": travel_type.travel_type_code,
            "travelTypeName": travel_type.travel_type_name,
            "travelTypeEmoji": travel_type.travel_type_emoji,
            "travelTypeDescription": travel_type.travel_type_description,
            "travelTypeShortDescription": travel_type.travel_type_short_description,
            "timestamp": normalized.timestamp,
            "status": meta.status,
            "lastSyncedAt": meta.last_synced_at,
        }))
        writes.append((_KEYS.QUIZ_STATUS, meta.to_wire()))

        for key, value in writes:
            if not self.storage.set_json(account_id, key, value):
                logger.warning("Failed to persist quiz result for account %s", account_id)
                return False

        if emit_event:
            self.events.emit()
        return True

    def resolve_quiz_result_state(self, account_id: str | None) -> QuizResultState:
        if not account_id:
            return QuizResultState(status="missing")

        stored = self.storage.get_json(account_id, _KEYS.RECOMMENDATION)
        if not isinstance(stored, dict) or not stored.get("travelType"):
            return QuizResultState(status="missing")

        try:
            record = self.normalize_quiz_result(stored)
        except ValueError:
            logger.warning("Failed to resolve quiz result state for account %s", account_id, exc_info=True)
            return QuizResultState(status="missing")

        meta = self._read_status_meta(account_id)
        status = meta.status
        if status == "synced" and not self.is_fresh(record.timestamp):
            status = "stale"

        return QuizResultState(
            status=status,
            record=record,
            last_synced_at=meta.last_synced_at,
            last_attempt_at=meta.last_attempt_at,
            error=meta.error,
            retriable=meta.retriable,
        )

    def get_stored_quiz_result(self, account_id: str | None) -> StoredQuizResult | None:
        state = self.resolve_quiz_result_state(account_id)
        if state.status == "missing":
            return None
        return state.record

    def clear_quiz_data(self, account_id: str | None) -> None:
        if self.storage.backend is None:
            return
        for key in (
            _KEYS.RECOMMENDATION,
            _KEYS.QUIZ_PAYLOAD,
            _KEYS.QUIZ_FORM,
            _KEYS.QUIZ_STATUS,
        ):
            self.storage.remove(account_id, key)
        self.clear_pending_quiz_result()
        self.events.emit()

    def get_stored_quiz_form_answers(self, account_id: str | None) -> QuizAnswers | None:
        stored = self.storage.get_json(account_id, _KEYS.QUIZ_FORM)
        if not isinstance(stored, dict):
            return None
        try:
            return QuizAnswers.model_validate(stored)
        except ValidationError:
            logger.warning("Malformed quiz answers for account %s", account_id, exc_info=True)
            return None

    def save_quiz_form_answers(
        self,
        account_id: str | None,
        answers: QuizAnswers | dict[str, Any] | None,
    ) -> None:
        if not account_id or not answers:
            return
        if isinstance(answers, dict):
            answers = QuizAnswers.model_validate(answers)
        self.storage.set_json(account_id, _KEYS.QUIZ_FORM, answers.to_wire())

    def subscribe_quiz_result(self, listener: Callable[[], None]) -> Callable[[], None]:
        return self.events.subscribe(listener)

    # ── Pending slot (results computed before an account exists) ────────

    def save_pending_quiz_result(
        self,
        result: StoredQuizResult | dict[str, Any],
        account_id: str | None = None,
    ) -> bool:
        backend = self.storage.backend
        if backend is None:
            return False
        try:
            record = PendingQuizResultRecord(
                stored_at=self.now_ms(),
                result=self.normalize_quiz_result(result),
                account_id=account_id,
            )
            backend.set_item(PENDING_QUIZ_RESULT_KEY, json.dumps(record.to_wire(), ensure_ascii=False))
        except (ValueError, OSError):
            logger.warning("Failed to save pending quiz result", exc_info=True)
            return False
        logger.debug("Saved pending quiz result (has account: %s)", bool(account_id))
        return True

    def get_pending_quiz_result(self) -> PendingQuizResultRecord | None:
        backend = self.storage.backend
        if backend is None:
            return None
        try:
            raw = backend.get_item(PENDING_QUIZ_RESULT_KEY)
            if not raw:
                return None
            record = PendingQuizResultRecord.model_validate(json.loads(raw))
        except (ValueError, OSError):
            logger.warning("Failed to read pending quiz result", exc_info=True)
            return None
        if not record.result.travel_type.travel_type_code:
            return None
        if not record.stored_at or self.now_ms() - record.stored_at > QUIZ_RESULT_TTL_MS:
            self.clear_pending_quiz_result()
            return None
        return record

    def clear_pending_quiz_result(self) -> None:
        backend = self.storage.backend
        if backend is None:
            return
        try:
            backend.remove_item(PENDING_QUIZ_RESULT_KEY)
        except OSError:
            logger.warning("Failed to clear pending quiz result", exc_info=True)

    def transfer_pending_quiz_result(self, account_id: str | None) -> StoredQuizResult | None:
        """Move the pending slot into ``account_id``'s namespace as a pending result."""
        if not account_id:
            return None
        pending = self.get_pending_quiz_result()
        if pending is None:
            return None

        if pending.account_id and pending.account_id != account_id:
            logger.warning(
                "Pending quiz result belongs to account %s, not %s",
                pending.account_id,
                account_id,
            )
            return None

        persisted = self.persist_quiz_result_local(
            account_id, pending.result, status="pending", emit_event=False,
        )
        if not persisted:
            logger.error("Failed to persist pending quiz result for account %s", account_id)
            return None

        self.clear_pending_quiz_result()
        self.events.emit()
        logger.debug("Transferred pending quiz result to account %s", account_id)
        return pending.result

    # ── Backend sync ─────────────────────────────────────────────────────

    async def _post_quiz_result(
        self,
        result: StoredQuizResult,
        auth_token: str | None = None,
        account_id: str | None = None,
        account_token: str | None = None,
    ) -> QuizSyncResult:
        if self.http is None:
            return QuizSyncResult(success=False, retriable=False, message="http client unavailable")

        payload = {
            "travelType": result.travel_type.to_wire(),
            "answers": result.answers.to_wire() if result.answers is not None else None,
            "places": result.places,
            "timestamp": result.timestamp or self.now_ms(),
        }
        headers = {"Content-Type": "application/json"}
        if account_id and account_token:
            headers["X-Gappy-Account-Id"] = account_id
            headers["X-Gappy-Account-Token"] = account_token
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"

        try:
            response = await self.http.post(QUIZ_STATE_ENDPOINT, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Failed to sync quiz state", exc_info=True)
            return QuizSyncResult(success=False, retriable=True, message=str(exc) or type(exc).__name__)

        if response.is_success:
            return QuizSyncResult(success=True, retriable=False)

        message = (
            f"Failed to sync quiz state: {response.status_code} "
            f"{response.reason_phrase} {response.text}"
        )
        if response.status_code in (401, 403, 503):
            logger.warning(message)
        else:
            logger.error(message)
        return QuizSyncResult(
            success=False,
            status=response.status_code,
            message=response.text,
            retriable=True,
        )

    async def sync_quiz_result_to_server(
        self,
        result: StoredQuizResult | dict[str, Any],
        auth_token: str | None = None,
        account_id: str | None = None,
        account_token: str | None = None,
    ) -> QuizSyncResult:
        try:
            result = _coerce_result(result)
        except ValidationError:
            return QuizSyncResult(success=False, retriable=False, message="missing travelType")
        if not result.travel_type.travel_type_code:
            return QuizSyncResult(success=False, retriable=False, message="missing travelType")
        return await self._post_quiz_result(result, auth_token, account_id, account_token)

    async def flush_pending_quiz_results(
        self,
        account_id: str | None,
        auth_token: str | None = None,
        account_token: str | None = None,
        force: bool = False,
    ) -> QuizSyncResult:
        """Push the stored result to the backend if its status calls for it."""
        if not account_id:
            return QuizSyncResult(success=False, retriable=False, message="missing accountId")

        state = self.resolve_quiz_result_state(account_id)
        if state.status == "missing" or state.record is None:
            return QuizSyncResult(success=False, retriable=False, message="no local result")

        if not _should_attempt_sync(state, force):
            retriable = False if state.status == "synced" else bool(state.retriable)
            success = state.status in ("synced", "stale") or not retriable
            return QuizSyncResult(success=success, retriable=retriable)

        attempt_started_at = self.now_ms()
        self._write_status_meta(account_id, QuizStatusMeta(
            status="pending",
            last_synced_at=state.last_synced_at,
            last_attempt_at=attempt_started_at,
            error=None,
            retriable=True,
        ))

        outcome = await self._post_quiz_result(state.record, auth_token, account_id, account_token)

        if outcome.success:
            self.persist_quiz_result_local(
                account_id,
                state.record,
                status="synced",
                last_synced_at=self.now_ms(),
                last_attempt_at=attempt_started_at,
                emit_event=False,
            )
        else:
            self.persist_quiz_result_local(
                account_id,
                state.record,
                status="pending" if outcome.retriable else "failed",
                last_synced_at=state.last_synced_at,
                last_attempt_at=attempt_started_at,
                error=outcome.message,
                retriable=outcome.retriable if outcome.retriable is not None else True,
                emit_event=False,
            )
        self.events.emit()
        return outcome

    def queue_quiz_result_sync(
        self,
        account_id: str | None,
        auth_token: str | None = None,
        account_token: str | None = None,
        force: bool = False,
    ) -> asyncio.Task | None:
        """
        Schedule a flush for ``account_id`` on the running loop.

        While a flush is in flight further calls return it unchanged, unless
        ``force`` is set, in which case a forced flush is chained after it.
        """
        if not account_id:
            return None

        loop = asyncio.get_running_loop()
        existing = self._in_flight_syncs.get(account_id)
        if existing is not None and not force:
            return existing

        async def run() -> QuizSyncResult:
            try:
                if existing is not None:
                    try:
                        await existing
                    except Exception:
                        logger.debug("Previous quiz sync failed, running forced sync", exc_info=True)
                return await self.flush_pending_quiz_results(
                    account_id, auth_token, account_token, force,
                )
            finally:
                if self._in_flight_syncs.get(account_id) is asyncio.current_task():
                    del self._in_flight_syncs[account_id]

        task = loop.create_task(run())
        self._in_flight_syncs[account_id] = task
        return task
