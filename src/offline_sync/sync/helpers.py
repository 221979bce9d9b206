"""Offline-first read and write paths built on the engine and the store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from offline_sync.core.stored_object import ObjectOrigin

if TYPE_CHECKING:
    from offline_sync.core.queued_request import RequestOptions
    from offline_sync.core.stored_object import StoredObject
    from offline_sync.storage.base import SyncStorage
    from offline_sync.sync.sync_engine import SyncEngine

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Transport that can also issue direct reads."""

    async def fetch(self, target: str, options: RequestOptions | None = None) -> Any: ...


async def synchronized_fetch(
    engine: SyncEngine,
    target: str,
    options: RequestOptions | None = None,
    *,
    fetcher: Fetcher | None = None,
) -> Any:
    """
    Read from the remote service after flushing queued writes.

    The queue is pushed first so a read never overtakes writes that were
    recorded before it.

    Args:
        engine: Engine owning the queue
        target: URL or path to read
        options: Request options for the read
        fetcher: Reader to use; defaults to the engine's transport

    Returns:
        Whatever the fetcher returns
    """
    await engine.push_changes()
    reader: Fetcher = fetcher if fetcher is not None else engine.transport  # type: ignore[assignment]
    return await reader.fetch(target, options)


async def mark_object_writable(storage: SyncStorage, obj: StoredObject) -> StoredObject:
    """Re-store an API-sourced object as client-owned.

    Objects already owned by the client are returned unchanged.
    """
    if obj.origin not in (None, ObjectOrigin.API):
        return obj
    logger.debug("Marking object %s writable", obj.id)
    return await storage.put_object(obj.with_origin(ObjectOrigin.CLIENT))


async def record_write(
    storage: SyncStorage,
    obj: StoredObject,
    target: str,
    options: RequestOptions | None = None,
) -> tuple[StoredObject, int]:
    """
    Apply a local write and queue its outbound mutation.

    Returns:
        The stored object and the sequence number of the queued request
    """
    stored = await storage.put_object(obj.with_origin(ObjectOrigin.CLIENT))
    sequence = await storage.enqueue_request(target, options)
    return stored, sequence
