from __future__ import annotations

from fastapi import Header, HTTPException

from .tokens import verify_account_token


def require_account(
    x_gappy_account_id: str | None = Header(default=None),
    x_gappy_account_token: str | None = Header(default=None),
) -> str:
    """Raise 401 unless the account headers carry a valid token for that account."""
    if not x_gappy_account_id or not x_gappy_account_token:
        raise HTTPException(status_code=401, detail="Missing account credentials")
    record = verify_account_token(x_gappy_account_token)
    if record is None or record.account_id != x_gappy_account_id:
        raise HTTPException(status_code=401, detail="Invalid account session")
    return x_gappy_account_id


def get_bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    """Return the bearer token from ``Authorization``, or ``None``."""
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization[7:].strip() or None


def require_bearer_token(authorization: str | None = Header(default=None)) -> str:
    """Raise 401 if no bearer token is present."""
    token = get_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Authorization required")
    return token
