from __future__ import annotations

import time
from typing import Any

_quiz_states: dict[str, dict[str, Any]] = {}
_user_by_account: dict[str, str] = {}
_account_by_user: dict[str, str] = {}


def get_quiz_state(account_id: str) -> dict[str, Any] | None:
    return _quiz_states.get(account_id)


def ensure_quiz_completed(account_id: str) -> dict[str, Any] | None:
    """Return the account's quiz state only if the quiz was completed."""
    state = _quiz_states.get(account_id)
    if not state or not state.get("completed"):
        return None
    return state


def merge_quiz_state(account_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    state = {**_quiz_states.get(account_id, {}), **updates, "lastSyncedAt": int(time.time() * 1000)}
    _quiz_states[account_id] = state
    return state


def get_linked_account(user_id: str) -> str | None:
    return _account_by_user.get(user_id)


def get_linked_user(account_id: str) -> str | None:
    return _user_by_account.get(account_id)


def link_account(account_id: str, user_id: str) -> None:
    _user_by_account[account_id] = user_id
    _account_by_user[user_id] = account_id


def clear_accounts() -> None:
    _quiz_states.clear()
    _user_by_account.clear()
    _account_by_user.clear()
