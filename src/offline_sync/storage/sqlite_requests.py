"""SQLite request queue operations mixin."""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING

from offline_sync.core.queued_request import QueuedRequest, RequestOptions
from offline_sync.core.stored_object import canonical_copy
from offline_sync.storage.sqlite_schema import storage_errors
from offline_sync.utils.timeutils import to_storage_string

if TYPE_CHECKING:
    import aiosqlite


class SQLiteRequestQueueMixin:
    """Mixin providing the outbound request queue for SQLiteStorage."""

    # ------------------------------------------------------------------
    # Protocol stubs, satisfied by SQLiteStorage at runtime.
    # ------------------------------------------------------------------

    def _ensure_conn(self) -> aiosqlite.Connection:
        raise NotImplementedError

    if TYPE_CHECKING:

        def now(self) -> datetime:
            raise NotImplementedError

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def enqueue_request(self, target: str, options: RequestOptions | None = None) -> int:
        """Append a request. Returns the sequence number."""
        conn = self._ensure_conn()
        options = options or RequestOptions()
        body = canonical_copy(options.body)

        with storage_errors("enqueue"):
            cursor = await conn.execute(
                """INSERT INTO requests (target, method, headers, body, added_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    target,
                    options.method,
                    json.dumps(options.headers),
                    json.dumps(body) if body is not None else None,
                    to_storage_string(self.now()),
                ),
            )
            await conn.commit()
        return int(cursor.lastrowid or 0)

    async def peek_next_request(self) -> QueuedRequest | None:
        conn = self._ensure_conn()
        with storage_errors("read"):
            async with conn.execute(
                "SELECT * FROM requests ORDER BY added_at ASC, sequence ASC LIMIT 1"
            ) as cursor:
                row = await cursor.fetchone()
        return _row_to_request(row) if row else None

    async def list_requests(self) -> list[QueuedRequest]:
        conn = self._ensure_conn()
        with storage_errors("read"):
            async with conn.execute(
                "SELECT * FROM requests ORDER BY added_at ASC, sequence ASC"
            ) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_request(row) for row in rows]

    async def dequeue_request(self, sequence: int) -> None:
        conn = self._ensure_conn()
        with storage_errors("dequeue"):
            await conn.execute("DELETE FROM requests WHERE sequence = ?", (sequence,))
            await conn.commit()

    async def count_pending_requests(self) -> int:
        conn = self._ensure_conn()
        with storage_errors("read"):
            async with conn.execute("SELECT COUNT(*) AS cnt FROM requests") as cursor:
                row = await cursor.fetchone()
        return int(row["cnt"]) if row else 0


def _row_to_request(row: aiosqlite.Row) -> QueuedRequest:
    """Convert a database row to a QueuedRequest."""
    return QueuedRequest(
        sequence=int(row["sequence"]),
        target=row["target"],
        options=RequestOptions(
            method=row["method"],
            headers=json.loads(row["headers"]) if row["headers"] else {},
            body=json.loads(row["body"]) if row["body"] is not None else None,
        ),
        added_at=datetime.fromisoformat(row["added_at"]),
    )
