from __future__ import annotations

import json
import logging
from typing import Any

from .backends import MemoryBackend, StorageBackend

logger = logging.getLogger(__name__)

NAMESPACE_PREFIX = "account"
LEGACY_QUIZ_PAYLOAD_KEY = "gappy_travel_quiz_payload"
MIGRATION_MARKER_KEY = "migration/v1"


class _Keys:
    QUIZ_PAYLOAD = "quiz/payload"
    QUIZ_FORM = "quiz/form"
    QUIZ_STATUS = "quiz/status"
    RECOMMENDATION = "recommendation/latest"
    ONBOARDING = "onboarding/status"
    SYNC_STATE = "sync/state"


ACCOUNT_STORAGE_KEYS = _Keys

_MIGRATABLE_KEYS = [
    _Keys.QUIZ_PAYLOAD,
    _Keys.QUIZ_FORM,
    _Keys.QUIZ_STATUS,
    _Keys.RECOMMENDATION,
    _Keys.ONBOARDING,
    _Keys.SYNC_STATE,
]


def build_key(account_id: str, key: str) -> str:
    return f"{NAMESPACE_PREFIX}/{account_id}/{key}"


def _parse_json(raw: str | None) -> Any | None:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Failed to parse stored JSON, treating as absent", exc_info=True)
        return None


class AccountStorage:
    """
    Key-value access scoped to one account at a time.

    Every call is a no-op (reads return ``None``) when ``account_id`` is falsy
    or when the storage was built without a backend, e.g. a server-side render
    with no persistent store. Backend ``OSError``s are logged and read as
    "no data"; writes report them by returning ``False``.
    """

    def __init__(self, backend: StorageBackend | None = None) -> None:
        self.backend = backend

    @classmethod
    def in_memory(cls) -> AccountStorage:
        return cls(MemoryBackend())

    def get(self, account_id: str | None, key: str) -> str | None:
        if self.backend is None or not account_id:
            return None
        try:
            return self.backend.get_item(build_key(account_id, key))
        except OSError:
            logger.warning("Failed to read %s for account %s", key, account_id, exc_info=True)
            return None

    def set(self, account_id: str | None, key: str, value: str) -> bool:
        """Write ``value``. Returns ``False`` if nothing was stored."""
        if self.backend is None or not account_id:
            return False
        try:
            self.backend.set_item(build_key(account_id, key), value)
        except OSError:
            logger.warning("Failed to write %s for account %s", key, account_id, exc_info=True)
            return False
        return True

    def remove(self, account_id: str | None, key: str) -> bool:
        if self.backend is None or not account_id:
            return False
        try:
            self.backend.remove_item(build_key(account_id, key))
        except OSError:
            logger.warning("Failed to remove %s for account %s", key, account_id, exc_info=True)
            return False
        return True

    def get_json(self, account_id: str | None, key: str) -> Any | None:
        return _parse_json(self.get(account_id, key))

    def set_json(self, account_id: str | None, key: str, value: Any) -> bool:
        if not account_id:
            return False
        return self.set(account_id, key, json.dumps(value, ensure_ascii=False, default=str))

    def move_account_data(
        self,
        source_account_id: str | None,
        target_account_id: str | None,
    ) -> bool:
        """Move every known account key from one namespace to another."""
        if (
            not source_account_id
            or not target_account_id
            or source_account_id == target_account_id
        ):
            return False
        if self.backend is None:
            return False

        moved = False
        for key in _MIGRATABLE_KEYS:
            value = self.get(source_account_id, key)
            if not value or not self.set(target_account_id, key, value):
                continue
            self.remove(source_account_id, key)
            moved = True
        return moved

    def migrate_legacy_account_data(self, account_id: str | None) -> None:
        """Adopt the pre-namespacing quiz payload into ``account_id``, once."""
        if not account_id or self.backend is None:
            return

        marker = build_key(account_id, MIGRATION_MARKER_KEY)
        try:
            if self.backend.get_item(marker) == "1":
                return

            legacy_quiz = self.backend.get_item(LEGACY_QUIZ_PAYLOAD_KEY)
            if legacy_quiz:
                if not self.set(account_id, _Keys.QUIZ_PAYLOAD, legacy_quiz):
                    return
                self.backend.remove_item(LEGACY_QUIZ_PAYLOAD_KEY)

            self.backend.set_item(marker, "1")
        except OSError:
            logger.warning("Legacy data migration failed for account %s", account_id, exc_info=True)
