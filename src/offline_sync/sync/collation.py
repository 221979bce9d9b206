"""Request collation: fold the queue into one effective request per identity.

Requests sharing ``(method, target)`` are merged last-write-wins: the
merged request takes every field from the latest request of its group
except ``added_at``, which keeps the group's earliest timestamp. Groups
are then replayed in order of that earliest timestamp, so a resource
first touched before another is still published first even when its
final payload was written later.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from offline_sync.core.queued_request import CollatedGroup, QueuedRequest

if TYPE_CHECKING:
    from collections.abc import Iterable

    from offline_sync.storage.base import SyncStorage

logger = logging.getLogger(__name__)


def collate_requests(requests: Iterable[QueuedRequest]) -> list[CollatedGroup]:
    """
    Merge queued requests by logical identity.

    Pure function of its input; calling it twice on the same requests
    yields equal groups in the same order.

    Args:
        requests: Queued requests (any order; re-sorted by added_at, sequence)

    Returns:
        Groups ordered by their earliest ``added_at``, ties in encounter order
    """
    ordered = sorted(requests, key=lambda r: (r.added_at, r.sequence or 0))

    # identity -> (merged request, subsumed sequences); dicts keep encounter order
    collated: dict[tuple[str, str], tuple[QueuedRequest, list[int]]] = {}

    for req in ordered:
        entry = collated.get(req.identity)
        if entry is None:
            merged, sequences = req, []
        else:
            first, sequences = entry
            merged = replace(req, added_at=first.added_at)
        if req.sequence is not None:
            sequences.append(req.sequence)
        collated[req.identity] = (merged, sequences)

    # sorted() is stable, so equal timestamps keep encounter order
    groups = sorted(collated.values(), key=lambda entry: entry[0].added_at)
    return [
        CollatedGroup(effective_request=merged, subsumed_sequences=tuple(sequences))
        for merged, sequences in groups
    ]


async def collate_queue(storage: SyncStorage) -> list[CollatedGroup]:
    """Read the whole request queue and collate it. Does not mutate the store."""
    pending = await storage.list_requests()
    groups = collate_requests(pending)
    logger.debug("Collated %d queued requests into %d groups", len(pending), len(groups))
    return groups
