"""Core data models for offline-sync."""

from offline_sync.core.events import (
    EVENT_TYPES,
    EventBus,
    ObjectChanged,
    PendingChanges,
    RequestsPublished,
    SyncEvent,
    WentOffline,
    WentOnline,
)
from offline_sync.core.queued_request import (
    DEFAULT_METHOD,
    CollatedGroup,
    QueuedRequest,
    RequestOptions,
)
from offline_sync.core.stored_object import ObjectOrigin, StoredObject, canonical_copy

__all__ = [
    # Objects
    "ObjectOrigin",
    "StoredObject",
    "canonical_copy",
    # Request queue
    "DEFAULT_METHOD",
    "CollatedGroup",
    "QueuedRequest",
    "RequestOptions",
    # Events
    "EVENT_TYPES",
    "EventBus",
    "ObjectChanged",
    "PendingChanges",
    "RequestsPublished",
    "SyncEvent",
    "WentOffline",
    "WentOnline",
]
