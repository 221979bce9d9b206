"""In-memory storage backend."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING

from offline_sync.core.queued_request import QueuedRequest, RequestOptions
from offline_sync.core.stored_object import canonical_copy
from offline_sync.errors import StorageError
from offline_sync.storage.base import SyncStorage
from offline_sync.utils.timeutils import utcnow

if TYPE_CHECKING:
    from offline_sync.core.events import EventBus
    from offline_sync.core.stored_object import StoredObject


class InMemoryStorage(SyncStorage):
    """Dict-backed storage for development and testing.

    Data is lost when the process exits.
    """

    def __init__(
        self,
        *,
        bus: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(bus=bus, clock=clock)
        self._objects: dict[str, StoredObject] = {}
        self._requests: dict[int, QueuedRequest] = {}
        self._sequence = itertools.count(1)
        self._closed = False

    async def initialize(self) -> None:
        self._closed = False

    async def close(self) -> None:
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError("Storage is closed")

    # ========== Object Operations ==========

    async def get_object(self, object_id: str) -> StoredObject | None:
        self._check_open()
        return self._objects.get(object_id)

    async def find_objects(self, type: str | None = None) -> list[StoredObject]:
        self._check_open()
        return [
            obj
            for _, obj in sorted(self._objects.items())
            if type is None or obj.type == type
        ]

    async def _save_object(self, obj: StoredObject) -> None:
        self._check_open()
        self._objects[obj.id] = obj

    async def _delete_object(self, object_id: str) -> None:
        self._check_open()
        self._objects.pop(object_id, None)

    # ========== Request Queue Operations ==========

    async def enqueue_request(self, target: str, options: RequestOptions | None = None) -> int:
        self._check_open()
        options = options or RequestOptions()
        options = replace(options, headers=dict(options.headers), body=canonical_copy(options.body))
        sequence = next(self._sequence)
        self._requests[sequence] = QueuedRequest(
            target=target,
            options=options,
            added_at=self.now(),
            sequence=sequence,
        )
        return sequence

    async def peek_next_request(self) -> QueuedRequest | None:
        requests = await self.list_requests()
        return requests[0] if requests else None

    async def list_requests(self) -> list[QueuedRequest]:
        self._check_open()
        return sorted(self._requests.values(), key=lambda r: (r.added_at, r.sequence or 0))

    async def dequeue_request(self, sequence: int) -> None:
        self._check_open()
        self._requests.pop(sequence, None)

    async def count_pending_requests(self) -> int:
        self._check_open()
        return len(self._requests)
