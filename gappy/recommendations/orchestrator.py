from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

import httpx

from ..quiz.client_state import QuizClientState
from ..quiz.models import StoredTravelType
from .models import RecommendationState

logger = logging.getLogger(__name__)

CACHE_TTL_MS = 1000 * 60 * 5  # 5 minutes
RECOMMEND_ENDPOINT = "/api/recommend"

Listener = Callable[[], None]


class RecommendationFetchError(Exception):
    """The backend answered, but not with a usable recommendation."""


class RecommendationOrchestrator:
    """
    In-memory recommendation cache keyed by ``"<accountId>:<travelTypeCode>"``.

    At most one request per key is in flight; overlapping callers share its
    task. A ``ready`` state younger than ``CACHE_TTL_MS`` answers repeat
    requests without touching the network. Failures land in the state's
    ``error`` field and are never raised to the caller.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        quiz_state: QuizClientState | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.http = http
        self.quiz_state = quiz_state
        self._clock = clock
        self._store: dict[str, RecommendationState] = {}
        self._listeners: dict[str, set[Listener]] = {}
        self._in_flight: dict[str, asyncio.Task] = {}

    @staticmethod
    def build_key(account_id: str, travel_type_code: str) -> str:
        return f"{account_id}:{travel_type_code}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _notify(self, key: str) -> None:
        for listener in list(self._listeners.get(key, ())):
            try:
                listener()
            except Exception:
                logger.warning("Recommendation listener for %s failed", key, exc_info=True)

    def _get_state(self, key: str) -> RecommendationState:
        if key not in self._store:
            self._store[key] = RecommendationState()
        return self._store[key]

    def _set_state(self, key: str, state: RecommendationState) -> None:
        self._store[key] = state
        self._notify(key)

    def subscribe(self, key: str, listener: Listener) -> Callable[[], None]:
        self._listeners.setdefault(key, set()).add(listener)

        def unsubscribe() -> None:
            self._listeners.get(key, set()).discard(listener)

        return unsubscribe

    def get_snapshot(self, key: str) -> RecommendationState:
        return self._get_state(key)

    def _load_from_storage(self, key: str, account_id: str, travel_type_code: str) -> None:
        """Seed an idle key from the stored quiz result's places, if they match."""
        if self.quiz_state is None or self._get_state(key).status != "idle":
            return
        stored = self.quiz_state.resolve_quiz_result_state(account_id)
        if stored.status == "missing" or stored.record is None:
            return
        if stored.record.travel_type.travel_type_code != travel_type_code:
            return
        if stored.record.places:
            self._set_state(key, RecommendationState(
                status="ready",
                places=list(stored.record.places),
                updated_at=stored.record.timestamp or self._now_ms(),
            ))

    @staticmethod
    def _resolved() -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        future.set_result(None)
        return future

    def request_recommendation(
        self,
        account_id: str,
        account_token: str,
        auth_token: str,
        travel_type: StoredTravelType,
    ) -> asyncio.Future:
        """
        Make sure the key for ``travel_type`` is loading or fresh.

        Must be called from a running event loop. Returns an awaitable that
        completes once the key has settled; callers overlapping a request in
        flight get that same task back.
        """
        code = travel_type.travel_type_code or ""
        key = self.build_key(account_id, code)
        self._load_from_storage(key, account_id, code)
        current = self._get_state(key)
        now = self._now_ms()

        if current.status == "loading":
            in_flight = self._in_flight.get(key)
            if in_flight is not None:
                return in_flight

        if (
            current.status == "ready"
            and current.updated_at
            and now - current.updated_at < CACHE_TTL_MS
        ):
            return self._resolved()

        # Without a real location the backend would fall back to its own
        # default, so report nothing rather than the wrong neighbourhood.
        if travel_type.location_lat is None or travel_type.location_lng is None:
            logger.info(
                "Skipping recommendation for %s: location not available (lat=%s, lng=%s)",
                key,
                travel_type.location_lat is not None,
                travel_type.location_lng is not None,
            )
            self._set_state(key, RecommendationState(status="empty", places=[], updated_at=now))
            return self._resolved()

        task = asyncio.get_running_loop().create_task(
            self._fetch(key, account_id, account_token, auth_token, travel_type),
        )
        self._in_flight[key] = task
        self._set_state(key, current.model_copy(update={"status": "loading"}))
        return task

    async def _fetch(
        self,
        key: str,
        account_id: str,
        account_token: str,
        auth_token: str,
        travel_type: StoredTravelType,
    ) -> None:
        try:
            response = await self.http.post(
                RECOMMEND_ENDPOINT,
                json={
                    "travelTypeCode": travel_type.travel_type_code,
                    "location": {
                        "lat": travel_type.location_lat,
                        "lng": travel_type.location_lng,
                    },
                },
                headers={
                    "Content-Type": "application/json",
                    "X-Gappy-Account-Id": account_id,
                    "X-Gappy-Account-Token": account_token,
                    "Authorization": f"Bearer {auth_token}",
                },
            )
            if not response.is_success:
                raise RecommendationFetchError(response.text or "Failed to fetch recommendation")

            data: Any = response.json()
            if not isinstance(data, dict):
                raise RecommendationFetchError("Malformed recommendation response")
            items = data.get("items")
            items = items if isinstance(items, list) else []
            status = data.get("status") or ("ready" if items else "empty")

            if status == "ready" and items:
                self._set_state(key, RecommendationState(
                    status="ready", places=items, updated_at=self._now_ms(),
                ))
                return
            if status == "empty":
                self._set_state(key, RecommendationState(
                    status="empty", places=[], updated_at=self._now_ms(),
                ))
                return
            raise RecommendationFetchError("Unknown recommendation status")
        except (httpx.HTTPError, ValueError, RecommendationFetchError) as exc:
            logger.warning("Recommendation request for %s failed: %s", key, exc)
            self._set_state(key, RecommendationState(
                status="error",
                places=[],
                updated_at=self._now_ms(),
                error=str(exc) or type(exc).__name__,
            ))
        finally:
            self._in_flight.pop(key, None)
