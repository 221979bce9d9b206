"""Tests for SingleFlight debounced coalescing."""

from __future__ import annotations

import asyncio

import pytest

from offline_sync.sync.single_flight import SingleFlight


class _Counter:
    """Coroutine function that counts calls and tracks overlap."""

    def __init__(self, delay: float = 0.0, result: object = "done") -> None:
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.delay = delay
        self.result = result

    async def __call__(self) -> object:
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            return self.result
        finally:
            self.active -= 1


class TestValidation:
    def test_negative_wait_rejected(self) -> None:
        with pytest.raises(ValueError):
            SingleFlight(_Counter(), wait=-1)

    def test_max_wait_below_wait_rejected(self) -> None:
        with pytest.raises(ValueError):
            SingleFlight(_Counter(), wait=0.5, max_wait=0.1)


class TestCoalescing:
    """Calls inside the window share one execution."""

    async def test_burst_runs_once(self) -> None:
        fn = _Counter(result=42)
        flight = SingleFlight(fn, wait=0.02)

        results = await asyncio.gather(flight(), flight(), flight())

        assert results == [42, 42, 42]
        assert fn.calls == 1
        assert flight.executions == 1

    async def test_sequential_calls_run_separately(self) -> None:
        fn = _Counter()
        flight = SingleFlight(fn, wait=0.01)

        await flight()
        await flight()

        assert fn.calls == 2

    async def test_pending_flag(self) -> None:
        flight = SingleFlight(_Counter(), wait=0.05)
        task = asyncio.create_task(flight())
        await asyncio.sleep(0)

        assert flight.pending is True
        await task
        assert flight.pending is False

    async def test_max_wait_bounds_deferral(self) -> None:
        fn = _Counter()
        flight = SingleFlight(fn, wait=0.05, max_wait=0.06)
        tasks = []
        for _ in range(10):
            tasks.append(asyncio.create_task(flight()))
            await asyncio.sleep(0.02)

        # Without max_wait the timer would still be re-armed at this point
        assert fn.calls >= 1
        await asyncio.gather(*tasks)


class TestNoOverlap:
    """Executions never run concurrently."""

    async def test_call_during_execution_forms_next_batch(self) -> None:
        fn = _Counter(delay=0.05)
        flight = SingleFlight(fn, wait=0.0)

        first = asyncio.create_task(flight())
        await asyncio.sleep(0.02)  # first execution is running
        assert flight.running is True

        second = asyncio.create_task(flight())
        third = asyncio.create_task(flight())
        await asyncio.gather(first, second, third)

        assert fn.calls == 2
        assert fn.max_active == 1


class TestResultDelivery:
    """Every caller of a batch receives its outcome."""

    async def test_exception_delivered_to_all_callers(self) -> None:
        async def _fail() -> None:
            raise RuntimeError("boom")

        flight = SingleFlight(_fail, wait=0.01)
        results = await asyncio.gather(flight(), flight(), return_exceptions=True)

        assert all(isinstance(r, RuntimeError) for r in results)

    async def test_next_batch_runs_after_failure(self) -> None:
        attempts: list[int] = []

        async def _flaky() -> int:
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("first fails")
            return len(attempts)

        flight = SingleFlight(_flaky, wait=0.0)
        with pytest.raises(RuntimeError):
            await flight()
        assert await flight() == 2


class TestFlushAndCancel:
    async def test_flush_runs_immediately(self) -> None:
        fn = _Counter()
        flight = SingleFlight(fn, wait=10.0)

        task = asyncio.create_task(flight())
        await asyncio.sleep(0)
        flight.flush()

        assert await asyncio.wait_for(task, timeout=1.0) == "done"

    async def test_flush_without_pending_is_noop(self) -> None:
        flight = SingleFlight(_Counter(), wait=0.01)
        flight.flush()
        assert flight.executions == 0

    async def test_cancel_drops_pending_batch(self) -> None:
        fn = _Counter()
        flight = SingleFlight(fn, wait=10.0)

        task = asyncio.create_task(flight())
        await asyncio.sleep(0)
        flight.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert fn.calls == 0
        assert flight.pending is False

    async def test_aclose_cancels_running_execution(self) -> None:
        fn = _Counter(delay=10.0)
        flight = SingleFlight(fn, wait=0.0)

        task = asyncio.create_task(flight())
        await asyncio.sleep(0.01)
        assert flight.running is True

        await flight.aclose()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert flight.running is False

    async def test_caller_cancellation_does_not_cancel_batch(self) -> None:
        fn = _Counter(delay=0.01)
        flight = SingleFlight(fn, wait=0.01)

        impatient = asyncio.create_task(flight())
        patient = asyncio.create_task(flight())
        await asyncio.sleep(0)
        impatient.cancel()

        assert await patient == "done"
        assert fn.calls == 1
