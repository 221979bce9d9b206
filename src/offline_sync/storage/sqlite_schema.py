"""SQLite schema definition for offline-sync storage."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from offline_sync.errors import StorageError

logger = logging.getLogger(__name__)

# Stored objects are not migrated; the version only guards against opening
# a database written by an incompatible release.
SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY);

-- Application objects, source of truth for reads
CREATE TABLE IF NOT EXISTS objects (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    payload TEXT NOT NULL,  -- JSON
    added_at TEXT NOT NULL,
    origin TEXT
);
CREATE INDEX IF NOT EXISTS idx_objects_type ON objects(type);

-- Outbound request queue; AUTOINCREMENT keeps sequences strictly increasing
CREATE TABLE IF NOT EXISTS requests (
    sequence INTEGER PRIMARY KEY AUTOINCREMENT,
    target TEXT NOT NULL,
    method TEXT,
    headers TEXT NOT NULL DEFAULT '{}',  -- JSON
    body TEXT,  -- JSON
    added_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_requests_added ON requests(added_at, sequence);
"""


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate sqlite failures into ``StorageError``."""
    try:
        yield
    except sqlite3.Error as e:
        logger.debug("SQLite %s failed", operation, exc_info=True)
        raise StorageError(f"Storage {operation} failed: {e}") from e
