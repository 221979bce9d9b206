"""SQLite object operations mixin."""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from offline_sync.core.stored_object import ObjectOrigin, StoredObject
from offline_sync.storage.sqlite_schema import storage_errors
from offline_sync.utils.timeutils import to_storage_string

if TYPE_CHECKING:
    import aiosqlite


class SQLiteObjectMixin:
    """Mixin providing object persistence for SQLiteStorage."""

    # ------------------------------------------------------------------
    # Protocol stubs, satisfied by SQLiteStorage at runtime.
    # ------------------------------------------------------------------

    def _ensure_conn(self) -> aiosqlite.Connection:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_object(self, object_id: str) -> StoredObject | None:
        conn = self._ensure_conn()
        with storage_errors("read"):
            async with conn.execute("SELECT * FROM objects WHERE id = ?", (object_id,)) as cursor:
                row = await cursor.fetchone()
        return _row_to_object(row) if row else None

    async def find_objects(self, type: str | None = None) -> list[StoredObject]:
        conn = self._ensure_conn()
        query = "SELECT * FROM objects"
        params: tuple[Any, ...] = ()
        if type is not None:
            query += " WHERE type = ?"
            params = (type,)
        query += " ORDER BY id"

        with storage_errors("read"):
            async with conn.execute(query, params) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_object(row) for row in rows]

    async def _save_object(self, obj: StoredObject) -> None:
        conn = self._ensure_conn()
        added_at = obj.added_at or datetime.min
        with storage_errors("write"):
            await conn.execute(
                """INSERT OR REPLACE INTO objects (id, type, payload, added_at, origin)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    obj.id,
                    obj.type,
                    json.dumps(obj.payload),
                    to_storage_string(added_at),
                    obj.origin.value if obj.origin else None,
                ),
            )
            await conn.commit()

    async def _delete_object(self, object_id: str) -> None:
        conn = self._ensure_conn()
        with storage_errors("delete"):
            await conn.execute("DELETE FROM objects WHERE id = ?", (object_id,))
            await conn.commit()


def _row_to_object(row: aiosqlite.Row) -> StoredObject:
    """Convert a database row to a StoredObject."""
    return StoredObject(
        id=row["id"],
        type=row["type"],
        payload=json.loads(row["payload"]),
        added_at=datetime.fromisoformat(row["added_at"]),
        origin=ObjectOrigin(row["origin"]) if row["origin"] else None,
    )
