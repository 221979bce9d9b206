"""Time helpers shared across the package."""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current UTC time as a naive datetime.

    Stored timestamps are naive UTC throughout the package so that
    ISO strings sort chronologically.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def to_storage_string(value: datetime) -> str:
    """Serialize a timestamp with fixed precision for lexical ordering."""
    return value.isoformat(timespec="microseconds")
