"""Sync engine: replays the durable request queue when connectivity allows.

The engine owns three pieces of background work:

- the control loop, ticking every ``tick_interval_ms``: it publishes the
  current pending-changes status and samples the connectivity monitor,
- the optional background sync loop, calling ``sync()`` every
  ``background_interval_ms``,
- pushes spawned when the monitor reports a transition to online.

Publishing is funnelled through a ``SingleFlight`` so bursts of triggers
coalesce into one pass and passes never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from offline_sync.core.events import EventBus, PendingChanges, RequestsPublished, WentOnline
from offline_sync.sync.collation import collate_queue
from offline_sync.sync.connectivity import ConnectivityMonitor, ConnectivityState
from offline_sync.sync.single_flight import SingleFlight

if TYPE_CHECKING:
    from offline_sync.core.queued_request import QueuedRequest
    from offline_sync.storage.base import SyncStorage
    from offline_sync.sync.transport import Transport

logger = logging.getLogger(__name__)

PullHook = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class SyncSettings:
    """Timing knobs for the engine, in milliseconds."""

    debounce_ms: int = 200
    tick_interval_ms: int = 200
    background_interval_ms: int = 5000
    background_enabled: bool = False


class SyncEngine:
    """
    Offline-first synchronization engine.

    Usage:
        engine = SyncEngine(storage, HttpTransport("https://api.example.com"))
        engine.start()
        published = await engine.sync()
        await engine.stop()
    """

    def __init__(
        self,
        storage: SyncStorage,
        transport: Transport,
        *,
        bus: EventBus | None = None,
        monitor: ConnectivityMonitor | None = None,
        settings: SyncSettings | None = None,
        pull_hook: PullHook | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            storage: Durable store holding objects and the request queue
            transport: Performs the replayed requests
            bus: Event bus; defaults to the storage's bus or a new one
            monitor: Connectivity monitor; defaults to the local route probe
            settings: Timing configuration
            pull_hook: Awaited at the end of every ``sync()``

        Raises:
            ValueError: If the storage or the monitor already publishes to a
                different bus
        """
        self._storage = storage
        self._transport = transport
        self._settings = settings or SyncSettings()

        self._bus = bus or storage.bus or EventBus()
        if storage.bus is None:
            storage.attach_bus(self._bus)
        elif storage.bus is not self._bus:
            raise ValueError("Storage already publishes to a different event bus")

        self._monitor = monitor or ConnectivityMonitor()
        if self._monitor.bus is None:
            self._monitor.attach_bus(self._bus)
        elif self._monitor.bus is not self._bus:
            raise ValueError("Connectivity monitor already publishes to a different event bus")

        self.pull_hook: PullHook | None = pull_hook

        self._loop_task: asyncio.Task[None] | None = None
        self._background_task: asyncio.Task[None] | None = None
        self._spawned: set[asyncio.Task[Any]] = set()
        self._publisher: SingleFlight[bool] = SingleFlight(
            self.publish_changes_now,
            wait=self._settings.debounce_ms / 1000,
            name="publish-changes",
        )

        self._bus.subscribe(WentOnline, self._on_went_online)

    # ========== Properties ==========

    @property
    def storage(self) -> SyncStorage:
        return self._storage

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def monitor(self) -> ConnectivityMonitor:
        return self._monitor

    @property
    def settings(self) -> SyncSettings:
        return self._settings

    @property
    def running(self) -> bool:
        """Whether the control loop is active."""
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def background_sync_enabled(self) -> bool:
        return self._background_task is not None and not self._background_task.done()

    @property
    def is_online(self) -> bool:
        """Fresh connectivity sample."""
        return self._monitor.is_online()

    @property
    def online_status(self) -> ConnectivityState:
        """Last state observed by the control loop."""
        return self._monitor.state

    # ========== Lifecycle ==========

    def start(self) -> None:
        """Start the control loop. Calling it again while running is a no-op.

        Background sync is enabled too when ``settings.background_enabled``
        is set and it is not already running.
        """
        if self.running:
            return
        task = asyncio.create_task(self._control_loop())
        task.add_done_callback(_log_task_exception)
        self._loop_task = task
        logger.info(
            "Sync engine started (tick=%dms, debounce=%dms)",
            self._settings.tick_interval_ms,
            self._settings.debounce_ms,
        )
        if self._settings.background_enabled and not self.background_sync_enabled:
            self.set_background_sync(True)

    async def stop(self) -> None:
        """Cancel every background task and the pending debounce."""
        tasks: list[asyncio.Task[Any]] = []
        for task in (self._loop_task, self._background_task):
            if task is not None and not task.done():
                task.cancel()
                tasks.append(task)
        self._loop_task = None
        self._background_task = None

        for task in list(self._spawned):
            task.cancel()
            tasks.append(task)

        await self._publisher.aclose()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Sync engine stopped")

    # ========== Control Surface ==========

    async def sync(self) -> bool:
        """
        Push queued changes if online, then run the pull hook.

        Returns:
            True if at least one request was published
        """
        self.start()

        published = False
        if not self.is_online:
            logger.warning("Device is offline, skipping push of queued changes")
        else:
            published = await self.push_changes()

        if self.pull_hook is not None:
            await self.pull_hook()
        return published

    async def push_changes(self) -> bool:
        """Debounced publish pass shared by all concurrent callers."""
        return await self._publisher()

    def set_background_sync(self, enabled: bool, interval_ms: int | None = None) -> None:
        """Enable or disable periodic ``sync()`` calls."""
        if self._background_task is not None and not self._background_task.done():
            self._background_task.cancel()
        self._background_task = None

        if not enabled:
            logger.info("Background sync disabled")
            return

        interval = interval_ms if interval_ms is not None else self._settings.background_interval_ms
        if interval <= 0:
            raise ValueError("interval_ms must be positive")

        task = asyncio.create_task(self._background_loop(interval / 1000))
        task.add_done_callback(_log_task_exception)
        self._background_task = task
        logger.info("Background sync enabled: every %dms", interval)

    async def has_pending_changes(self) -> bool:
        return await self._storage.has_pending_changes()

    async def peek_next_request(self) -> QueuedRequest | None:
        return await self._storage.peek_next_request()

    # ========== Publishing ==========

    async def publish_changes_now(self) -> bool:
        """
        Run one publish pass without debouncing.

        Collated groups are replayed in order. A group whose replay fails
        stays queued; the others are still attempted.

        Returns:
            True if at least one group was delivered

        Raises:
            StorageError: If the queue cannot be read
        """
        if not self.is_online:
            return False

        groups = await collate_queue(self._storage)
        published: list[QueuedRequest] = []

        for group in groups:
            request = group.effective_request
            try:
                await self._transport.perform(request.target, request.options)
            except Exception as e:
                logger.warning(
                    "Failed to publish %s %s, keeping it queued: %s",
                    request.options.effective_method,
                    request.target,
                    e,
                )
                continue

            await asyncio.gather(
                *(self._storage.dequeue_request(seq) for seq in group.subsumed_sequences)
            )
            logger.debug(
                "Published %s %s (dequeued %s)",
                request.options.effective_method,
                request.target,
                list(group.subsumed_sequences),
            )
            published.append(request)

        if published:
            self._bus.publish(RequestsPublished(requests=tuple(published)))
        return bool(published)

    # ========== Background Work ==========

    async def _tick(self) -> None:
        status = await self._storage.has_pending_changes()
        self._bus.publish(PendingChanges(status=status))
        self._monitor.check()

    async def _control_loop(self) -> None:
        interval = self._settings.tick_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                await self._tick()
            except Exception:
                logger.error("Sync engine tick failed", exc_info=True)

    async def _background_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sync()
            except Exception:
                logger.error("Background sync failed", exc_info=True)

    def _on_went_online(self, event: WentOnline) -> None:
        logger.info("Connectivity restored at %s, pushing queued changes", event.at)
        self._spawn(self.push_changes())

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._spawned.add(task)
        task.add_done_callback(self._spawned.discard)
        task.add_done_callback(_log_task_exception)


def _log_task_exception(task: asyncio.Task[Any]) -> None:
    """Log unhandled exceptions from engine background tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Sync engine task raised unhandled exception: %s", exc)
