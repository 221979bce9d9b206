"""Outbound requests waiting in the local queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from offline_sync.utils.timeutils import utcnow

DEFAULT_METHOD = "GET"


@dataclass(frozen=True)
class RequestOptions:
    """Method, headers and body of an HTTP-like request."""

    method: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    @property
    def effective_method(self) -> str:
        """Upper-cased method, ``GET`` when unspecified."""
        return (self.method or DEFAULT_METHOD).upper()

    def to_dict(self) -> dict[str, Any]:
        return {"method": self.method, "headers": dict(self.headers), "body": self.body}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RequestOptions:
        data = data or {}
        return cls(
            method=data.get("method"),
            headers=dict(data.get("headers") or {}),
            body=data.get("body"),
        )


@dataclass(frozen=True)
class QueuedRequest:
    """
    A pending outbound mutation.

    Attributes:
        sequence: Auto-incremented by the store; None until persisted
        target: URL or path the request is sent to
        options: Method, headers and body
        added_at: When the request was enqueued
    """

    target: str
    options: RequestOptions = field(default_factory=RequestOptions)
    added_at: datetime = field(default_factory=utcnow)
    sequence: int | None = None

    @property
    def identity(self) -> tuple[str, str]:
        """Logical identity used for collation: ``(method, target)``."""
        return (self.options.effective_method, self.target)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "target": self.target,
            "options": self.options.to_dict(),
            "added_at": self.added_at.isoformat(),
        }


@dataclass(frozen=True)
class CollatedGroup:
    """One effective request plus every queued sequence it stands for.

    Built fresh on each collation pass and never persisted.
    """

    effective_request: QueuedRequest
    subsumed_sequences: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "effective_request": self.effective_request.to_dict(),
            "subsumed_sequences": list(self.subsumed_sequences),
        }
