"""Typed publish/subscribe channel between the store, the engine and observers.

The set of events is fixed: every event is one of the frozen dataclasses
below, each carrying its wire-style ``signal`` name. Delivery is
synchronous, in subscription order, within the publishing call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, TypeVar

from offline_sync.core.queued_request import QueuedRequest
from offline_sync.core.stored_object import StoredObject

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncEvent:
    """Base class for all bus events."""

    signal: ClassVar[str] = ""


@dataclass(frozen=True)
class WentOnline(SyncEvent):
    """Connectivity came back."""

    signal: ClassVar[str] = "went-online"
    at: datetime


@dataclass(frozen=True)
class WentOffline(SyncEvent):
    """Connectivity was lost."""

    signal: ClassVar[str] = "went-offline"
    at: datetime


@dataclass(frozen=True)
class ObjectChanged(SyncEvent):
    """An object was written (``value`` set) or removed (``value`` is None)."""

    signal: ClassVar[str] = "object-changed"
    object_id: str
    value: StoredObject | None


@dataclass(frozen=True)
class RequestsPublished(SyncEvent):
    """A publish pass delivered these effective requests."""

    signal: ClassVar[str] = "requests-published"
    requests: tuple[QueuedRequest, ...]


@dataclass(frozen=True)
class PendingChanges(SyncEvent):
    """Level-triggered report of whether the queue is non-empty."""

    signal: ClassVar[str] = "pending-changes"
    status: bool


EVENT_TYPES: tuple[type[SyncEvent], ...] = (
    WentOnline,
    WentOffline,
    ObjectChanged,
    RequestsPublished,
    PendingChanges,
)

E = TypeVar("E", bound=SyncEvent)
Handler = Callable[[E], None]


class EventBus:
    """
    Synchronous fan-out of typed events.

    Usage:
        bus = EventBus()
        unsubscribe = bus.subscribe(WentOnline, lambda e: print(e.at))
        bus.publish(WentOnline(at=utcnow()))
        unsubscribe()
    """

    def __init__(self) -> None:
        self._handlers: dict[type[SyncEvent], list[Callable[[SyncEvent], None]]] = {
            event_type: [] for event_type in EVENT_TYPES
        }

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> Callable[[], None]:
        """
        Register a handler for one event type.

        Args:
            event_type: One of ``EVENT_TYPES``
            handler: Called with the event, synchronously, on publish

        Returns:
            A callable that removes this subscription

        Raises:
            ValueError: If the event type is not part of the bus contract
        """
        if event_type not in self._handlers:
            raise ValueError(f"Unknown event type: {event_type!r}")
        self._handlers[event_type].append(handler)  # type: ignore[arg-type]

        def _unsubscribe() -> None:
            self.unsubscribe(event_type, handler)

        return _unsubscribe

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove a handler; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)  # type: ignore[arg-type]

    def publish(self, event: SyncEvent) -> None:
        """Deliver an event to every subscriber of its type, in order.

        A failing handler is logged and does not stop delivery to the rest.
        """
        handlers = self._handlers.get(type(event))
        if handlers is None:
            raise ValueError(f"Unknown event type: {type(event)!r}")

        # Copy so handlers may unsubscribe while being called
        for handler in list(handlers):
            try:
                handler(event)
            except Exception:
                logger.warning("Event handler error for '%s'", event.signal, exc_info=True)

    def subscriber_count(self, event_type: type[SyncEvent]) -> int:
        return len(self._handlers.get(event_type, []))
