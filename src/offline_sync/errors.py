"""Exception taxonomy for offline-sync."""

from __future__ import annotations


class OfflineSyncError(Exception):
    """Base class for all offline-sync errors."""


class StorageError(OfflineSyncError):
    """The durable store is unavailable or a storage operation failed."""


class SerializationError(OfflineSyncError):
    """An object payload cannot be represented in the canonical format."""


class TransportFailure(OfflineSyncError):
    """A replay attempt against the remote service failed.

    The requests behind the attempt stay queued and are retried on the
    next publish pass.
    """

    def __init__(self, message: str, *, target: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.target = target
        self.status = status
