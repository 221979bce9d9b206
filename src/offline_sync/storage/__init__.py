"""Storage backends for offline-sync."""

from offline_sync.storage.base import SyncStorage
from offline_sync.storage.factory import create_storage
from offline_sync.storage.memory_store import InMemoryStorage
from offline_sync.storage.sqlite_store import SQLiteStorage

__all__ = [
    "SyncStorage",
    "InMemoryStorage",
    "SQLiteStorage",
    "create_storage",
]
