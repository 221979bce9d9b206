"""Abstract base class for durable sync storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING

from offline_sync.core.events import ObjectChanged
from offline_sync.core.stored_object import StoredObject, canonical_copy
from offline_sync.utils.timeutils import utcnow

if TYPE_CHECKING:
    from offline_sync.core.events import EventBus
    from offline_sync.core.queued_request import QueuedRequest, RequestOptions


class SyncStorage(ABC):
    """
    Abstract interface for the local store.

    Holds two collections: application objects keyed by id, and the
    ordered queue of outbound requests keyed by sequence number.

    Object writes share one policy across backends (timestamping, the
    canonical payload copy, change events); backends only implement the
    raw persistence hooks. Every operation may raise ``StorageError``
    when the underlying medium is unavailable.
    """

    def __init__(
        self,
        *,
        bus: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._bus = bus
        self._clock = clock

    @property
    def bus(self) -> EventBus | None:
        """Event bus that receives object change events, if attached."""
        return self._bus

    def attach_bus(self, bus: EventBus) -> None:
        """Publish object change events to ``bus`` from now on."""
        self._bus = bus

    def now(self) -> datetime:
        """Current time according to the store clock."""
        return self._clock()

    # ========== Lifecycle ==========

    async def initialize(self) -> None:  # noqa: B027
        """Open the underlying medium. No-op by default."""

    async def close(self) -> None:  # noqa: B027
        """Release the underlying medium. No-op by default."""

    # ========== Object Operations ==========

    async def put_object(self, obj: StoredObject) -> StoredObject:
        """
        Store an object, overwriting any previous value with the same id.

        Args:
            obj: The object to store; ``added_at`` is replaced by the store

        Returns:
            The value as stored

        Raises:
            SerializationError: If the payload does not round-trip through JSON
        """
        stored = replace(obj, added_at=self.now(), payload=canonical_copy(obj.payload))
        if self._bus is not None:
            self._bus.publish(ObjectChanged(object_id=stored.id, value=stored))
        await self._save_object(stored)
        return stored

    async def remove_object(self, object_id: str) -> None:
        """Delete an object. Removing a missing id is not an error."""
        if self._bus is not None:
            self._bus.publish(ObjectChanged(object_id=object_id, value=None))
        await self._delete_object(object_id)

    @abstractmethod
    async def get_object(self, object_id: str) -> StoredObject | None:
        """
        Get an object by id.

        Args:
            object_id: The object id

        Returns:
            The object if found, None otherwise
        """
        ...

    @abstractmethod
    async def find_objects(self, type: str | None = None) -> list[StoredObject]:
        """List objects ordered by id, optionally filtered by type."""
        ...

    @abstractmethod
    async def _save_object(self, obj: StoredObject) -> None:
        """Persist an already-normalized object (upsert by id)."""
        ...

    @abstractmethod
    async def _delete_object(self, object_id: str) -> None:
        """Delete an object row if present."""
        ...

    # ========== Request Queue Operations ==========

    @abstractmethod
    async def enqueue_request(self, target: str, options: RequestOptions | None = None) -> int:
        """
        Append a request to the queue.

        Args:
            target: URL or path of the request
            options: Method, headers and body

        Returns:
            The sequence number assigned by the store
        """
        ...

    @abstractmethod
    async def peek_next_request(self) -> QueuedRequest | None:
        """Return the oldest queued request (ties broken by sequence), or None."""
        ...

    @abstractmethod
    async def list_requests(self) -> list[QueuedRequest]:
        """Return every queued request ordered by ``(added_at, sequence)``."""
        ...

    @abstractmethod
    async def dequeue_request(self, sequence: int) -> None:
        """Delete a queued request. Deleting an absent sequence is not an error."""
        ...

    @abstractmethod
    async def count_pending_requests(self) -> int:
        """Number of queued requests."""
        ...

    async def has_pending_changes(self) -> bool:
        """Whether the request queue is non-empty."""
        return await self.count_pending_requests() > 0
