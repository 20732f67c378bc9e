from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Literal

import httpx

from ..storage import ACCOUNT_STORAGE_KEYS, AccountStorage

logger = logging.getLogger(__name__)

STATE_SYNC_ENDPOINT = "/api/account/state-sync"

SyncResource = Literal["quiz_results", "recommendation"]
SyncOutcome = Literal["nothing", "synced", "conflict", "failed"]


@dataclass(frozen=True)
class _Credentials:
    account_id: str
    account_token: str
    access_token: str | None


def _describe_failure(response: httpx.Response) -> str:
    message = f"State sync failed with status {response.status_code}"
    text = response.text
    try:
        data = json.loads(text)
    except ValueError:
        return f"{message}: {text}" if text else message
    if isinstance(data, dict):
        if data.get("error"):
            message += f": {data['error']}"
        if data.get("details"):
            message += f" ({data['details']})"
        if data.get("detail"):
            message += f": {data['detail']}"
        if data.get("message"):
            message += f" - {data['message']}"
    return message


class AccountSyncQueue:
    """
    Collects "this resource changed" signals and pushes the account state to
    the backend in one request.

    The queue only triggers a sync. What gets sent is re-derived from storage
    each time by comparing the stored recommendation timestamp with the last
    timestamp the backend acknowledged.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        storage: AccountStorage,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.http = http
        self.storage = storage
        self._clock = clock
        self._queue: set[str] = set()
        self._credentials: _Credentials | None = None
        self._in_flight: asyncio.Task | None = None

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._queue)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def enqueue(self, resource: SyncResource) -> None:
        self._queue.add(resource)
        creds = self._credentials
        if creds is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, deferring %s sync", resource)
            return
        self.process(creds.account_id, creds.account_token, creds.access_token)

    def clear(self) -> None:
        self._queue.clear()

    def process(
        self,
        account_id: str | None,
        account_token: str | None,
        access_token: str | None = None,
    ) -> asyncio.Task | None:
        """Start a sync, or return the one already in flight."""
        if not account_id or not account_token:
            return None
        self._credentials = _Credentials(account_id, account_token, access_token)

        if self._in_flight is not None:
            return self._in_flight

        async def run() -> SyncOutcome:
            try:
                return await self._perform_sync(account_id, account_token, access_token)
            finally:
                self._in_flight = None

        self._in_flight = asyncio.get_running_loop().create_task(run())
        return self._in_flight

    def get_sync_state(self, account_id: str) -> dict[str, Any]:
        state = self.storage.get_json(account_id, ACCOUNT_STORAGE_KEYS.SYNC_STATE)
        return state if isinstance(state, dict) else {}

    def _determine_resources(
        self,
        account_id: str,
        sync_state: dict[str, Any],
    ) -> tuple[set[str], dict[str, Any] | None]:
        resources = set(self._queue)
        payload = self.storage.get_json(account_id, ACCOUNT_STORAGE_KEYS.RECOMMENDATION)
        if not isinstance(payload, dict):
            return resources, None

        timestamp = payload.get("timestamp") or self._now_ms()
        last = sync_state.get("recommendation")
        if not isinstance(last, dict) or last.get("lastTimestamp") != timestamp:
            resources.add("recommendation")
        return resources, payload

    async def _perform_sync(
        self,
        account_id: str,
        account_token: str,
        access_token: str | None,
    ) -> SyncOutcome:
        sync_state = self.get_sync_state(account_id)
        resources, recommendation = self._determine_resources(account_id, sync_state)

        if not resources:
            self._queue.clear()
            return "nothing"

        payload: dict[str, Any] = {}
        if "recommendation" in resources and recommendation:
            payload["recommendation"] = recommendation
        if not payload:
            return "nothing"

        headers = {
            "Content-Type": "application/json",
            "X-Gappy-Account-Id": account_id,
            "X-Gappy-Account-Token": account_token,
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            response = await self.http.post(
                STATE_SYNC_ENDPOINT, json={"resources": payload}, headers=headers,
            )
        except httpx.HTTPError:
            logger.error("Failed to sync account state", exc_info=True)
            return "failed"

        if not response.is_success:
            message = _describe_failure(response)
            if response.status_code == 409:
                logger.warning("State sync skipped: %s", message)
                self._queue.clear()
                return "conflict"
            logger.error("Failed to sync account state: %s", message)
            return "failed"

        try:
            data = response.json()
        except ValueError:
            logger.error("State sync returned a non-JSON body", exc_info=True)
            return "failed"

        synced = set(data.get("synced") or []) if isinstance(data, dict) else set()
        next_state = dict(sync_state)
        if "recommendation" in synced and recommendation:
            next_state["recommendation"] = {
                "lastTimestamp": recommendation.get("timestamp") or self._now_ms(),
            }

        self.storage.set_json(account_id, ACCOUNT_STORAGE_KEYS.SYNC_STATE, next_state)
        self._queue.clear()
        return "synced"
