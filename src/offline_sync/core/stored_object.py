"""Application objects held in the local store."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from typing import Any

from offline_sync.errors import SerializationError


class ObjectOrigin(StrEnum):
    """Where the current version of an object came from."""

    API = "api"  # Pulled from the remote service
    CLIENT = "client"  # Written locally, possibly not yet pushed


def canonical_copy(payload: Any) -> Any:
    """Deep-copy a payload through its JSON representation.

    The copy must compare equal to the input, so values that JSON would
    silently coerce (tuples, non-string keys) are rejected along with
    values it cannot encode at all.

    Raises:
        SerializationError: If the payload does not round-trip losslessly.
    """
    try:
        encoded = json.dumps(payload, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Payload is not JSON-serializable: {e}") from e

    copied = json.loads(encoded)
    if copied != payload:
        raise SerializationError("Payload does not survive a JSON round trip unchanged")
    return copied


@dataclass(frozen=True)
class StoredObject:
    """
    A durable application record, the source of truth for reads.

    Attributes:
        id: Unique key
        type: Category tag used for lookups
        payload: JSON-representable value
        added_at: When the store last wrote this object (set by the store)
        origin: Whether the value came from the API or a local write
    """

    id: str
    type: str
    payload: Any = None
    added_at: datetime | None = None
    origin: ObjectOrigin | None = None

    def with_origin(self, origin: ObjectOrigin) -> StoredObject:
        """Return a copy tagged with a different origin."""
        return replace(self, origin=origin)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "payload": self.payload,
            "added_at": self.added_at.isoformat() if self.added_at else None,
            "origin": self.origin.value if self.origin else None,
        }
