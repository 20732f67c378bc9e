from __future__ import annotations

import base64
import hashlib
import hmac
import time
import uuid
from dataclasses import dataclass

from ..config import DEFAULT_SERVER_CONFIG, ServerConfig


@dataclass(frozen=True)
class AccountToken:
    account_id: str
    token: str
    issued_at: int
    expires_at: int


def create_account_id() -> str:
    return str(uuid.uuid4())


def _signature(payload: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), payload.encode(), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


def sign_account_token(
    account_id: str,
    issued_at: int | None = None,
    config: ServerConfig = DEFAULT_SERVER_CONFIG,
) -> AccountToken:
    """Issue ``<accountId>.<issuedAt>.<signature>`` for ``account_id``."""
    issued_at = issued_at if issued_at is not None else int(time.time() * 1000)
    payload = f"{account_id}.{issued_at}"
    return AccountToken(
        account_id=account_id,
        token=f"{payload}.{_signature(payload, config.account_token_secret)}",
        issued_at=issued_at,
        expires_at=issued_at + config.account_token_ttl_ms,
    )


def verify_account_token(
    token: str | None,
    config: ServerConfig = DEFAULT_SERVER_CONFIG,
) -> AccountToken | None:
    """Return the decoded token, or ``None`` if it is malformed, forged or expired."""
    if not token:
        return None
    parts = token.rsplit(".", 2)
    if len(parts) != 3:
        return None
    account_id, issued_raw, signature = parts
    if not account_id or not issued_raw.isdigit():
        return None

    expected = _signature(f"{account_id}.{issued_raw}", config.account_token_secret)
    if not hmac.compare_digest(signature, expected):
        return None

    issued_at = int(issued_raw)
    if int(time.time() * 1000) - issued_at > config.account_token_ttl_ms:
        return None

    return AccountToken(
        account_id=account_id,
        token=token,
        issued_at=issued_at,
        expires_at=issued_at + config.account_token_ttl_ms,
    )
