"""Pytest configuration and fixtures."""

from __future__ import annotations

import pathlib
from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from offline_sync.core.events import EventBus
from offline_sync.core.queued_request import RequestOptions
from offline_sync.errors import TransportFailure
from offline_sync.storage.memory_store import InMemoryStorage
from offline_sync.storage.sqlite_store import SQLiteStorage
from offline_sync.unified_config import reset_config


class StepClock:
    """Deterministic clock: every call advances by one millisecond."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 15, 10, 0, 0)
        self.step = timedelta(milliseconds=1)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value

    def freeze(self) -> None:
        self.step = timedelta(0)


class FakeTransport:
    """Records performed requests; fails for targets listed in ``failing``."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = set(failing or ())
        self.calls: list[tuple[str, RequestOptions]] = []
        self.fetches: list[str] = []

    async def perform(self, target: str, options: RequestOptions) -> None:
        self.calls.append((target, options))
        if target in self.failing:
            raise TransportFailure(f"{target} unavailable", target=target, status=503)

    async def fetch(self, target: str, options: RequestOptions | None = None) -> dict[str, str]:
        self.fetches.append(target)
        return {"target": target}


class SwitchProbe:
    """Connectivity probe whose answer the test controls."""

    def __init__(self, online: bool = True) -> None:
        self.online = online
        self.calls = 0

    def __call__(self) -> bool:
        self.calls += 1
        return self.online


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded(bus: EventBus) -> Callable[[type], list]:
    """Subscribe a recorder to an event type and return its list."""

    def _record(event_type: type) -> list:
        events: list = []
        bus.subscribe(event_type, events.append)
        return events

    return _record


@pytest_asyncio.fixture
async def storage(bus: EventBus, clock: StepClock) -> AsyncGenerator[InMemoryStorage, None]:
    """In-memory storage wired to the test bus and clock."""
    store = InMemoryStorage(bus=bus, clock=clock)
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def sqlite_storage(
    tmp_path: pathlib.Path, bus: EventBus, clock: StepClock
) -> AsyncGenerator[SQLiteStorage, None]:
    """SQLite storage in a temporary directory."""
    store = SQLiteStorage(tmp_path / "sync.db", bus=bus, clock=clock)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def probe() -> SwitchProbe:
    return SwitchProbe()


@pytest.fixture
def offlinesync_dir(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[pathlib.Path]:
    """Point the data directory at a temp dir and drop the cached config."""
    data_dir = tmp_path / "offlinesync"
    monkeypatch.setenv("OFFLINESYNC_DIR", str(data_dir))
    monkeypatch.delenv("OFFLINESYNC_LOG_LEVEL", raising=False)
    reset_config()
    yield data_dir
    reset_config()
