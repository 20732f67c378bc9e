from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from gappy.quiz import InvalidTravelTypeError, QuizClientState, QuizResultEvents
from gappy.quiz.client_state import PENDING_QUIZ_RESULT_KEY, QUIZ_RESULT_TTL_MS
from gappy.storage import ACCOUNT_STORAGE_KEYS, AccountStorage, MemoryBackend

NOW = 1_700_000_000.0
NOW_MS = int(NOW * 1000)
DAY_MS = 1000 * 60 * 60 * 24


class FakeClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _result(code="GRLP", timestamp=NOW_MS, **extra):
    return {"travelType": {"travelTypeCode": code}, "places": [], "timestamp": timestamp, **extra}


def _make_state(http=None, clock=None):
    return QuizClientState(AccountStorage.in_memory(), http=http, clock=clock or FakeClock())


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")


# ── Local persistence ────────────────────────────────────────────────────


def test_persist_then_resolve_is_pending_with_catalogue_fields():
    state = _make_state()
    assert state.persist_quiz_result_local("acct-1", _result()) is True

    resolved = state.resolve_quiz_result_state("acct-1")
    assert resolved.status == "pending"
    assert resolved.record.travel_type.travel_type_name == "The Itinerary CEO"
    assert resolved.record.travel_type.travel_type_emoji == "📍"
    assert resolved.retriable is True


def test_persist_writes_derived_views():
    state = _make_state()
    state.persist_quiz_result_local("acct-1", _result(answers={"walkingTolerance": 10}))

    payload = state.storage.get_json("acct-1", ACCOUNT_STORAGE_KEYS.QUIZ_PAYLOAD)
    assert payload["travelTypeCode"] == "GRLP"
    assert payload["status"] == "pending"
    assert payload["timestamp"] == NOW_MS

    status = state.storage.get_json("acct-1", ACCOUNT_STORAGE_KEYS.QUIZ_STATUS)
    assert status == {"version": 1, "status": "pending", "retriable": True}

    assert state.get_stored_quiz_form_answers("acct-1").walking_tolerance == "10"


def test_persist_without_account_does_nothing():
    state = _make_state()
    assert state.persist_quiz_result_local(None, _result()) is False
    assert state.storage.backend.keys() == []


def test_persist_rejects_missing_or_unknown_code():
    state = _make_state()
    with pytest.raises(InvalidTravelTypeError):
        state.persist_quiz_result_local("acct-1", {"travelType": {}, "places": []})
    with pytest.raises(InvalidTravelTypeError):
        state.persist_quiz_result_local("acct-1", _result(code="ZZZZ"))
    assert state.storage.backend.keys() == []


def test_persist_reports_failure_when_backend_refuses_write():
    class FullBackend(MemoryBackend):
        def set_item(self, key, value):
            raise OSError("quota exceeded")

    calls = []
    state = QuizClientState(AccountStorage(FullBackend()), clock=FakeClock())
    state.subscribe_quiz_result(lambda: calls.append(1))

    assert state.persist_quiz_result_local("acct-1", _result()) is False
    assert calls == []


class FlakyBackend(MemoryBackend):
    """Works until ``failing`` is switched on, then every call raises."""

    failing = False

    def _check(self):
        if self.failing:
            raise OSError("disk full")

    def get_item(self, key):
        self._check()
        return super().get_item(key)

    def set_item(self, key, value):
        self._check()
        super().set_item(key, value)

    def remove_item(self, key):
        self._check()
        super().remove_item(key)


def test_storage_failures_after_persist_do_not_escape():
    backend = FlakyBackend()
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={})

    async def scenario():
        async with _client(handler) as http:
            state = QuizClientState(AccountStorage(backend), http=http, clock=FakeClock())
            state.persist_quiz_result_local("acct-1", _result())
            backend.failing = True
            outcome = await state.flush_pending_quiz_results("acct-1")
            state.clear_quiz_data("acct-1")
            return state, outcome

    state, outcome = asyncio.run(scenario())

    # Reads now fail too, so the flush sees no local result.
    assert outcome.success is False
    assert outcome.message == "no local result"
    assert requests == []
    assert state.resolve_quiz_result_state("acct-1").status == "missing"
    assert state.get_pending_quiz_result() is None


class ReadOnlyBackend(FlakyBackend):
    """Reads keep working once ``failing`` is on; writes and removals raise."""

    def get_item(self, key):
        return MemoryBackend.get_item(self, key)


def test_flush_survives_write_failures_during_sync():
    backend = ReadOnlyBackend()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    async def scenario():
        async with _client(handler) as http:
            state = QuizClientState(AccountStorage(backend), http=http, clock=FakeClock())
            state.persist_quiz_result_local("acct-1", _result())
            backend.failing = True
            return state, await state.flush_pending_quiz_results("acct-1")

    state, outcome = asyncio.run(scenario())

    assert outcome.success is True
    # The synced status could not be written, so the stored status is unchanged.
    assert state.resolve_quiz_result_state("acct-1").status == "pending"


def test_missing_timestamp_is_filled_from_clock():
    state = _make_state()
    state.persist_quiz_result_local("acct-1", {"travelType": {"travelTypeCode": "SDLF"}})
    assert state.get_stored_quiz_result("acct-1").timestamp == NOW_MS


def test_clear_quiz_data_returns_to_missing():
    state = _make_state()
    state.persist_quiz_result_local("acct-1", _result())
    state.save_pending_quiz_result(_result())

    state.clear_quiz_data("acct-1")

    assert state.resolve_quiz_result_state("acct-1").status == "missing"
    assert state.get_stored_quiz_result("acct-1") is None
    assert state.storage.backend.get_item(PENDING_QUIZ_RESULT_KEY) is None


def test_resolve_without_account_or_data_is_missing():
    state = _make_state()
    assert state.resolve_quiz_result_state(None).status == "missing"
    assert state.resolve_quiz_result_state("nobody").status == "missing"


def test_synced_result_older_than_ttl_is_stale():
    state = _make_state()
    old = NOW_MS - 31 * DAY_MS
    state.persist_quiz_result_local("acct-1", _result(timestamp=old), status="synced", last_synced_at=old)

    resolved = state.resolve_quiz_result_state("acct-1")
    assert resolved.status == "stale"
    assert resolved.last_synced_at == old


def test_synced_result_within_ttl_stays_synced():
    state = _make_state()
    recent = NOW_MS - 29 * DAY_MS
    state.persist_quiz_result_local("acct-1", _result(timestamp=recent), status="synced")
    assert state.resolve_quiz_result_state("acct-1").status == "synced"


def test_old_pending_result_is_not_downgraded_to_stale():
    state = _make_state()
    state.persist_quiz_result_local("acct-1", _result(timestamp=NOW_MS - 60 * DAY_MS))
    assert state.resolve_quiz_result_state("acct-1").status == "pending"


def test_result_without_status_meta_counts_as_synced():
    state = _make_state()
    state.storage.set_json("acct-1", ACCOUNT_STORAGE_KEYS.RECOMMENDATION, _result())
    assert state.resolve_quiz_result_state("acct-1").status == "synced"


def test_stored_result_with_unknown_code_resolves_missing():
    state = _make_state()
    state.storage.set_json("acct-1", ACCOUNT_STORAGE_KEYS.RECOMMENDATION, _result(code="NOPE"))
    assert state.resolve_quiz_result_state("acct-1").status == "missing"


def test_form_answers_roundtrip():
    state = _make_state()
    state.save_quiz_form_answers("acct-1", {"walkingTolerance": "15", "budget": "mid"})
    answers = state.get_stored_quiz_form_answers("acct-1")
    assert answers.walking_tolerance == "15"
    assert answers.to_wire()["budget"] == "mid"
    assert state.get_stored_quiz_form_answers("acct-2") is None


# ── Change notification ──────────────────────────────────────────────────


def test_listeners_are_notified_until_unsubscribed():
    state = _make_state()
    calls = []
    unsubscribe = state.subscribe_quiz_result(lambda: calls.append("changed"))

    state.persist_quiz_result_local("acct-1", _result())
    state.clear_quiz_data("acct-1")
    assert calls == ["changed", "changed"]

    unsubscribe()
    state.persist_quiz_result_local("acct-1", _result())
    assert calls == ["changed", "changed"]


def test_failing_listener_does_not_block_others():
    events = QuizResultEvents()
    calls = []

    def broken():
        raise RuntimeError("listener bug")

    events.subscribe(broken)
    events.subscribe(lambda: calls.append(1))
    events.emit()
    assert calls == [1]


def test_persist_can_skip_event():
    state = _make_state()
    calls = []
    state.subscribe_quiz_result(lambda: calls.append(1))
    state.persist_quiz_result_local("acct-1", _result(), emit_event=False)
    assert calls == []


# ── Pending slot ─────────────────────────────────────────────────────────


def test_pending_result_transfers_into_account():
    state = _make_state()
    assert state.save_pending_quiz_result(_result(code="SDLF")) is True

    transferred = state.transfer_pending_quiz_result("acct-1")

    assert transferred.travel_type.travel_type_code == "SDLF"
    assert state.resolve_quiz_result_state("acct-1").status == "pending"
    assert state.get_pending_quiz_result() is None


def test_pending_result_for_another_account_is_not_transferred():
    state = _make_state()
    state.save_pending_quiz_result(_result(), account_id="acct-9")

    assert state.transfer_pending_quiz_result("acct-1") is None
    assert state.resolve_quiz_result_state("acct-1").status == "missing"
    assert state.get_pending_quiz_result() is not None


def test_expired_pending_result_is_dropped():
    clock = FakeClock()
    state = _make_state(clock=clock)
    state.save_pending_quiz_result(_result())

    clock.now = NOW + (QUIZ_RESULT_TTL_MS / 1000) + 1
    assert state.get_pending_quiz_result() is None
    assert state.storage.backend.get_item(PENDING_QUIZ_RESULT_KEY) is None


def test_corrupt_pending_slot_reads_as_absent():
    state = _make_state()
    state.storage.backend.set_item(PENDING_QUIZ_RESULT_KEY, "{oops")
    assert state.get_pending_quiz_result() is None
    assert state.transfer_pending_quiz_result("acct-1") is None


# ── Backend sync ─────────────────────────────────────────────────────────


def test_flush_marks_result_synced_on_success():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"status": "ok"})

    async def scenario():
        async with _client(handler) as http:
            state = _make_state(http=http)
            state.persist_quiz_result_local("acct-1", _result())
            outcome = await state.flush_pending_quiz_results("acct-1", "user-token", "acct-token")
            return state, outcome

    state, outcome = asyncio.run(scenario())

    assert outcome.success is True
    resolved = state.resolve_quiz_result_state("acct-1")
    assert resolved.status == "synced"
    assert resolved.last_synced_at == NOW_MS

    assert len(requests) == 1
    sent = requests[0]
    assert sent.url.path == "/api/account/quiz-state"
    assert sent.headers["Authorization"] == "Bearer user-token"
    assert sent.headers["X-Gappy-Account-Id"] == "acct-1"
    assert sent.headers["X-Gappy-Account-Token"] == "acct-token"
    body = json.loads(sent.content)
    assert body["travelType"]["travelTypeCode"] == "GRLP"
    assert body["timestamp"] == NOW_MS


def test_flush_keeps_result_pending_on_server_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    async def scenario():
        async with _client(handler) as http:
            state = _make_state(http=http)
            state.persist_quiz_result_local("acct-1", _result())
            outcome = await state.flush_pending_quiz_results("acct-1")
            return state, outcome

    state, outcome = asyncio.run(scenario())

    assert outcome.success is False
    assert outcome.status == 500
    resolved = state.resolve_quiz_result_state("acct-1")
    assert resolved.status == "pending"
    assert resolved.error == "boom"
    assert resolved.last_attempt_at == NOW_MS


def test_flush_survives_network_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with _client(handler) as http:
            state = _make_state(http=http)
            state.persist_quiz_result_local("acct-1", _result())
            outcome = await state.flush_pending_quiz_results("acct-1")
            return state, outcome

    state, outcome = asyncio.run(scenario())

    assert outcome.success is False
    assert outcome.retriable is True
    assert state.resolve_quiz_result_state("acct-1").status == "pending"


def test_flush_skips_synced_results_unless_forced():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    async def scenario():
        async with _client(handler) as http:
            state = _make_state(http=http)
            state.persist_quiz_result_local("acct-1", _result(), status="synced")
            skipped = await state.flush_pending_quiz_results("acct-1")
            forced = await state.flush_pending_quiz_results("acct-1", force=True)
            return skipped, forced

    skipped, forced = asyncio.run(scenario())

    assert skipped.success is True
    assert skipped.retriable is False
    assert forced.success is True
    assert len(calls) == 1


def test_flush_without_local_result():
    async def scenario():
        return await _make_state().flush_pending_quiz_results("acct-1")

    outcome = asyncio.run(scenario())
    assert outcome.success is False
    assert outcome.message == "no local result"


def test_sync_to_server_requires_travel_type_code():
    async def scenario():
        return await _make_state().sync_quiz_result_to_server({"travelType": {}})

    outcome = asyncio.run(scenario())
    assert outcome.success is False
    assert outcome.retriable is False


def test_queued_syncs_for_same_account_share_one_request():
    calls = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        await asyncio.sleep(0)
        return httpx.Response(200, json={})

    async def scenario():
        async with _client(handler) as http:
            state = _make_state(http=http)
            state.persist_quiz_result_local("acct-1", _result())
            first = state.queue_quiz_result_sync("acct-1")
            second = state.queue_quiz_result_sync("acct-1")
            assert first is second
            await first
            return state

    state = asyncio.run(scenario())

    assert len(calls) == 1
    assert state._in_flight_syncs == {}


def test_forced_sync_runs_after_the_one_in_flight():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    async def scenario():
        async with _client(handler) as http:
            state = _make_state(http=http)
            state.persist_quiz_result_local("acct-1", _result())
            first = state.queue_quiz_result_sync("acct-1")
            forced = state.queue_quiz_result_sync("acct-1", force=True)
            assert first is not forced
            await forced
            return state

    state = asyncio.run(scenario())

    assert len(calls) == 2
    assert state._in_flight_syncs == {}
    assert state.resolve_quiz_result_state("acct-1").status == "synced"
