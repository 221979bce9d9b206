"""offline-sync - offline-first object store with a durable, replayable request queue."""

from offline_sync.core.events import (
    EventBus,
    ObjectChanged,
    PendingChanges,
    RequestsPublished,
    WentOffline,
    WentOnline,
)
from offline_sync.core.queued_request import CollatedGroup, QueuedRequest, RequestOptions
from offline_sync.core.stored_object import ObjectOrigin, StoredObject
from offline_sync.errors import (
    OfflineSyncError,
    SerializationError,
    StorageError,
    TransportFailure,
)
from offline_sync.storage import InMemoryStorage, SQLiteStorage, SyncStorage, create_storage
from offline_sync.sync import (
    ConnectivityMonitor,
    HttpTransport,
    SyncEngine,
    SyncSettings,
    mark_object_writable,
    record_write,
    synchronized_fetch,
)

__version__ = "0.1.0"

__all__ = [
    # Core models
    "CollatedGroup",
    "ObjectOrigin",
    "QueuedRequest",
    "RequestOptions",
    "StoredObject",
    # Events
    "EventBus",
    "ObjectChanged",
    "PendingChanges",
    "RequestsPublished",
    "WentOffline",
    "WentOnline",
    # Errors
    "OfflineSyncError",
    "SerializationError",
    "StorageError",
    "TransportFailure",
    # Storage
    "InMemoryStorage",
    "SQLiteStorage",
    "SyncStorage",
    "create_storage",
    # Sync
    "ConnectivityMonitor",
    "HttpTransport",
    "SyncEngine",
    "SyncSettings",
    "mark_object_writable",
    "record_write",
    "synchronized_fetch",
    # Version
    "__version__",
]
