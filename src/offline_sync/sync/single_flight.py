"""Single-flight coalescing of rapid, repeated async triggers.

Combines a trailing-edge debounce with an execution lock:

- Calls that arrive before the timer fires join one pending batch. Each
  call re-arms the timer, so the batch runs ``wait`` seconds after the
  last trigger (bounded by ``max_wait`` when given).
- When the timer fires the batch is detached and executed under an
  ``asyncio.Lock``. Calls arriving during an execution form the next
  batch, which waits for the lock. Two executions never overlap.
- Every caller of a batch receives that batch's result or exception.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """
    Debounced, non-overlapping runner for a zero-argument coroutine function.

    Usage:
        publish = SingleFlight(do_publish, wait=0.2)
        results = await asyncio.gather(publish(), publish(), publish())
        # do_publish ran once; all three callers got its result
    """

    def __init__(
        self,
        fn: Callable[[], Awaitable[T]],
        wait: float,
        *,
        max_wait: float | None = None,
        name: str = "",
    ) -> None:
        """
        Initialize the runner.

        Args:
            fn: Coroutine function executed once per batch
            wait: Seconds of quiet after the last call before running
            max_wait: Upper bound on how long a batch may be deferred
            name: Label used in log messages
        """
        if wait < 0:
            raise ValueError("wait must be >= 0")
        if max_wait is not None and max_wait < wait:
            raise ValueError("max_wait must be >= wait")

        self._fn = fn
        self._wait = wait
        self._max_wait = max_wait
        self._name = name or getattr(fn, "__name__", "single-flight")

        self._lock = asyncio.Lock()
        self._pending: asyncio.Future[T] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._batch_started_at: float | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._executions = 0

    @property
    def pending(self) -> bool:
        """Whether a batch is waiting for its timer."""
        return self._pending is not None

    @property
    def running(self) -> bool:
        """Whether an execution currently holds the lock."""
        return self._lock.locked()

    @property
    def executions(self) -> int:
        """Number of executions started so far."""
        return self._executions

    async def __call__(self) -> T:
        """Join the next batch and wait for its result."""
        loop = asyncio.get_running_loop()
        if self._pending is None:
            self._pending = loop.create_future()
            self._batch_started_at = loop.time()
        self._arm(loop)

        # Shield so one cancelled caller does not cancel the shared batch
        return await asyncio.shield(self._pending)

    def flush(self) -> None:
        """Start the pending batch now instead of waiting for the timer."""
        if self._pending is not None:
            self._fire()

    def cancel(self) -> None:
        """Drop the pending batch and cancel running executions.

        Callers waiting on a dropped batch receive ``CancelledError``.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        self._batch_started_at = None
        for task in list(self._tasks):
            task.cancel()

    async def aclose(self) -> None:
        """Cancel everything and wait for running executions to unwind."""
        self.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _arm(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._timer is not None:
            self._timer.cancel()

        delay = self._wait
        if self._max_wait is not None and self._batch_started_at is not None:
            remaining = self._max_wait - (loop.time() - self._batch_started_at)
            delay = max(0.0, min(delay, remaining))

        self._timer = loop.call_later(delay, self._fire)

    def _fire(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        future, self._pending = self._pending, None
        self._batch_started_at = None
        if future is None or future.done():
            return

        task = asyncio.get_running_loop().create_task(self._run(future))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, future: asyncio.Future[T]) -> None:
        async with self._lock:
            if future.done():
                return

            self._executions += 1
            logger.debug("%s: execution #%d started", self._name, self._executions)
            try:
                result = await self._fn()
            except asyncio.CancelledError:
                future.cancel()
                raise
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
