"""SQLite storage backend for the durable object store and request queue."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite

from offline_sync.errors import StorageError
from offline_sync.storage.base import SyncStorage
from offline_sync.storage.sqlite_objects import SQLiteObjectMixin
from offline_sync.storage.sqlite_requests import SQLiteRequestQueueMixin
from offline_sync.storage.sqlite_schema import SCHEMA, SCHEMA_VERSION
from offline_sync.utils.timeutils import utcnow

if TYPE_CHECKING:
    from offline_sync.core.events import EventBus

logger = logging.getLogger(__name__)


class SQLiteStorage(
    SQLiteObjectMixin,
    SQLiteRequestQueueMixin,
    SyncStorage,
):
    """SQLite-based durable storage.

    Data persists to disk and survives restarts. Each write commits
    before returning, so a returned ``put_object``/``enqueue_request``
    is durable.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        bus: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(bus=bus, clock=clock)
        self._db_path = Path(db_path).resolve()
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        """Open the database connection and create the schema if needed.

        Raises:
            StorageError: If the database cannot be opened or was written by
                a newer schema version
        """
        if self._conn is not None:
            return

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            # aiosqlite leaves its worker thread running when the initial
            # connect fails, so unopenable paths are rejected before it starts
            await asyncio.to_thread(_check_openable, self._db_path)
            self._conn = await aiosqlite.connect(self._db_path)
            self._conn.row_factory = aiosqlite.Row

            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA synchronous=NORMAL")
            await self._conn.executescript(SCHEMA)

            async with self._conn.execute("SELECT version FROM schema_version") as cursor:
                row = await cursor.fetchone()
            if row is None:
                await self._conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
                )
                await self._conn.commit()
            elif row["version"] > SCHEMA_VERSION:
                raise StorageError(
                    f"Database schema v{row['version']} is newer than supported v{SCHEMA_VERSION}"
                )
        except (sqlite3.Error, OSError) as e:
            await self.close()
            raise StorageError(f"Cannot open database {self._db_path}: {e}") from e
        except StorageError:
            await self.close()
            raise

        logger.debug("Opened sync database at %s", self._db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _ensure_conn(self) -> aiosqlite.Connection:
        """Ensure the connection is available."""
        if self._conn is None:
            raise StorageError("Database not initialized. Call initialize() first.")
        return self._conn


def _check_openable(db_path: Path) -> None:
    """Open and close the database file synchronously, raising ``sqlite3.Error``."""
    sqlite3.connect(db_path).close()
