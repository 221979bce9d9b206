"""Tests for the offline-first read/write helpers."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest_asyncio

from offline_sync.core.events import EventBus, ObjectChanged
from offline_sync.core.queued_request import RequestOptions
from offline_sync.core.stored_object import ObjectOrigin, StoredObject
from offline_sync.storage.memory_store import InMemoryStorage
from offline_sync.sync.connectivity import ConnectivityMonitor
from offline_sync.sync.helpers import mark_object_writable, record_write, synchronized_fetch
from offline_sync.sync.sync_engine import SyncEngine, SyncSettings


@pytest_asyncio.fixture
async def engine(
    storage: InMemoryStorage, transport, probe, bus: EventBus
) -> AsyncGenerator[SyncEngine, None]:
    sync_engine = SyncEngine(
        storage,
        transport,
        bus=bus,
        monitor=ConnectivityMonitor(probe),
        settings=SyncSettings(debounce_ms=5, tick_interval_ms=10),
    )
    yield sync_engine
    await sync_engine.stop()


class TestSynchronizedFetch:
    """Reads are issued after queued writes are flushed."""

    async def test_queue_flushed_before_read(
        self, engine: SyncEngine, storage: InMemoryStorage, transport
    ) -> None:
        order: list[str] = []
        original_perform = transport.perform
        original_fetch = transport.fetch

        async def _perform(target: str, options: RequestOptions) -> None:
            order.append(f"write {target}")
            await original_perform(target, options)

        async def _fetch(target: str, options: RequestOptions | None = None):
            order.append(f"read {target}")
            return await original_fetch(target, options)

        transport.perform = _perform
        transport.fetch = _fetch
        await storage.enqueue_request("/todos/1", RequestOptions(method="PUT", body={"done": True}))

        result = await synchronized_fetch(engine, "/todos")

        assert result == {"target": "/todos"}
        assert order == ["write /todos/1", "read /todos"]
        assert await storage.count_pending_requests() == 0

    async def test_offline_still_reads(
        self, engine: SyncEngine, storage: InMemoryStorage, transport, probe
    ) -> None:
        probe.online = False
        await storage.enqueue_request("/todos/1", RequestOptions(method="PUT", body=1))

        await synchronized_fetch(engine, "/todos")

        assert transport.calls == []
        assert transport.fetches == ["/todos"]
        assert await storage.count_pending_requests() == 1

    async def test_explicit_fetcher(self, engine: SyncEngine, transport) -> None:
        class _Reader:
            async def fetch(self, target: str, options: RequestOptions | None = None) -> str:
                return f"cached:{target}"

        assert await synchronized_fetch(engine, "/x", fetcher=_Reader()) == "cached:/x"
        assert transport.fetches == []


class TestMarkObjectWritable:
    """API-sourced objects are re-owned by the client."""

    async def test_api_object_becomes_client(self, storage: InMemoryStorage, recorded) -> None:
        api_obj = await storage.put_object(
            StoredObject(id="todo-1", type="todo", payload={"v": 1}, origin=ObjectOrigin.API)
        )
        events = recorded(ObjectChanged)

        result = await mark_object_writable(storage, api_obj)

        assert result.origin == ObjectOrigin.CLIENT
        stored = await storage.get_object("todo-1")
        assert stored is not None
        assert stored.origin == ObjectOrigin.CLIENT
        assert stored.payload == {"v": 1}
        assert len(events) == 1

    async def test_object_without_origin_becomes_client(self, storage: InMemoryStorage) -> None:
        obj = await storage.put_object(StoredObject(id="todo-2", type="todo"))
        result = await mark_object_writable(storage, obj)
        assert result.origin == ObjectOrigin.CLIENT

    async def test_client_object_unchanged(self, storage: InMemoryStorage, recorded) -> None:
        obj = await storage.put_object(
            StoredObject(id="todo-3", type="todo", origin=ObjectOrigin.CLIENT)
        )
        events = recorded(ObjectChanged)

        result = await mark_object_writable(storage, obj)

        assert result is obj
        assert events == []


class TestRecordWrite:
    """A local write stores the object and queues its mutation."""

    async def test_stores_and_enqueues(self, storage: InMemoryStorage) -> None:
        stored, sequence = await record_write(
            storage,
            StoredObject(id="todo-1", type="todo", payload={"title": "milk"}),
            "/todos/1",
            RequestOptions(method="PUT", body={"title": "milk"}),
        )

        assert stored.origin == ObjectOrigin.CLIENT
        assert (await storage.get_object("todo-1")) == stored

        request = await storage.peek_next_request()
        assert request is not None
        assert request.sequence == sequence
        assert request.target == "/todos/1"
        assert request.options.body == {"title": "milk"}

    async def test_api_origin_overridden(self, storage: InMemoryStorage) -> None:
        stored, _ = await record_write(
            storage,
            StoredObject(id="todo-1", type="todo", origin=ObjectOrigin.API),
            "/todos/1",
        )
        assert stored.origin == ObjectOrigin.CLIENT
