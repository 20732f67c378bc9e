"""
Account-namespaced key-value storage.

Responsibilities:
- Wrap a persistent string store behind ``get_item/set_item/remove_item``.
- Namespace every key as ``account/<accountId>/<key>``.
- Degrade to "no data" instead of raising when there is no account or store.
"""
from .account_storage import ACCOUNT_STORAGE_KEYS, AccountStorage
from .backends import JSONFileBackend, MemoryBackend, StorageBackend

__all__ = [
    "ACCOUNT_STORAGE_KEYS",
    "AccountStorage",
    "JSONFileBackend",
    "MemoryBackend",
    "StorageBackend",
]
