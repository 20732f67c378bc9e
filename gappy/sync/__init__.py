"""
Account state sync.

Responsibilities:
- Collect "needs syncing" signals for account resources.
- Push the changed resources to the backend in one request.
- Remember what the backend acknowledged so unchanged data is not resent.
"""
from .account_sync import STATE_SYNC_ENDPOINT, AccountSyncQueue

__all__ = ["STATE_SYNC_ENDPOINT", "AccountSyncQueue"]
