"""
Unit Tests: Scheduler

Periodic execution, cancellation states and shutdown.
"""

import asyncio

import pytest

from core.cache.errors import InvalidArgument
from core.cache.scheduler import CancellationToken, Scheduler, SchedulerState


@pytest.fixture
def scheduler(metrics):
    return Scheduler(metrics)


class TestCancellationToken:

    @pytest.mark.asyncio
    async def test_wait_times_out(self):
        token = CancellationToken()

        assert await token.wait(0.01) is False
        assert token.cancelled is False

    @pytest.mark.asyncio
    async def test_wait_returns_on_cancel(self):
        token = CancellationToken()
        token.cancel()

        assert await token.wait(5) is True


class TestStart:

    @pytest.mark.parametrize("interval", [0, -1, 1.5, None])
    def test_invalid_interval(self, scheduler, interval):
        async def tick(token):
            pass

        with pytest.raises(InvalidArgument):
            scheduler.start(interval, tick)

    def test_invalid_initial_delay(self, scheduler):
        async def tick(token):
            pass

        with pytest.raises(InvalidArgument):
            scheduler.start(1000, tick, initial_delay_ms=-5)

    @pytest.mark.asyncio
    async def test_runs_periodically(self, scheduler, metrics):
        ticks = []
        third = asyncio.Event()

        async def tick(token):
            ticks.append(token)
            if len(ticks) == 3:
                third.set()

        handle = scheduler.start(50, tick, initial_delay_ms=0)
        assert metrics['scheduled_tasks'].get() == 1

        await asyncio.wait_for(third.wait(), 2)
        assert handle.state == SchedulerState.IDLE

        handle.cancel()
        assert handle.state == SchedulerState.STOPPED
        await asyncio.wait_for(handle.wait(), 1)

        assert handle.runs == 3
        assert not handle.is_active
        assert metrics['scheduled_tasks'].get() == 0

    @pytest.mark.asyncio
    async def test_first_tick_waits_initial_delay(self, scheduler):
        ran = []

        async def tick(token):
            ran.append(True)

        handle = scheduler.start(1000, tick)
        await asyncio.sleep(0.05)

        assert ran == []
        handle.cancel()
        await handle.wait()
        assert handle.runs == 0

    @pytest.mark.asyncio
    async def test_failing_tick_does_not_stop_loop(self, scheduler):
        second = asyncio.Event()
        attempts = []

        async def tick(token):
            attempts.append(1)
            if len(attempts) == 2:
                second.set()
            raise RuntimeError("boom")

        handle = scheduler.start(10, tick, initial_delay_ms=0)
        await asyncio.wait_for(second.wait(), 2)
        handle.cancel()
        await handle.wait()

        assert handle.failures >= 2
        assert handle.runs == handle.failures


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_mid_tick_lets_tick_finish(self, scheduler):
        started = asyncio.Event()
        release = asyncio.Event()
        seen_cancelled = []

        async def tick(token):
            started.set()
            await release.wait()
            seen_cancelled.append(token.cancelled)

        handle = scheduler.start(1000, tick, initial_delay_ms=0)
        await asyncio.wait_for(started.wait(), 1)
        assert handle.state == SchedulerState.RUNNING

        scheduler.cancel(handle)
        assert handle.state == SchedulerState.CANCELLING

        release.set()
        await asyncio.wait_for(handle.wait(), 1)

        assert seen_cancelled == [True]
        assert handle.runs == 1
        assert handle.state == SchedulerState.STOPPED
        assert scheduler.active() == []

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self, scheduler):
        async def tick(token):
            pass

        handle = scheduler.start(1000, tick)
        handle.cancel()
        handle.cancel()
        await handle.wait()

        assert handle.state == SchedulerState.STOPPED

    @pytest.mark.asyncio
    async def test_shutdown_stops_everything(self, scheduler, metrics):
        async def tick(token):
            pass

        handles = [scheduler.start(1000, tick) for _ in range(3)]
        assert len(scheduler.active()) == 3

        await scheduler.shutdown()

        assert all(h.state == SchedulerState.STOPPED for h in handles)
        assert scheduler.active() == []
        assert metrics['scheduled_tasks'].get() == 0
