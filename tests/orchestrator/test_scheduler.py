"""
Tests for the RefreshScheduler.

The clock and sleep are injected, so no test waits on real
time.
"""

import asyncio
import logging

import pytest

from orchestrator import RefreshScheduler


class FakeSleep:
    """Records requested delays and signals after `stop_after` calls."""

    def __init__(self, stop_after: int = 3):
        self.delays = []
        self.stop_after = stop_after
        self.reached = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if len(self.delays) >= self.stop_after:
            self.reached.set()
        await asyncio.sleep(0)


class TestTick:

    def test_rejects_non_positive_interval(self):
        async def refresh():
            pass

        with pytest.raises(ValueError):
            RefreshScheduler(refresh, interval_seconds=0)

    @pytest.mark.asyncio
    async def test_tick_runs_refresh(self, mock_clock):
        calls = []

        async def refresh():
            calls.append(mock_clock.now())

        scheduler = RefreshScheduler(refresh, interval_seconds=10, clock=mock_clock)

        assert await scheduler.tick() is True
        assert calls == [mock_clock.now()]
        assert scheduler.tick_count == 1
        assert scheduler.last_tick_at == mock_clock.now()

    @pytest.mark.asyncio
    async def test_failed_tick_counted(self, mock_clock, caplog):
        async def refresh():
            raise RuntimeError("upstream unavailable")

        scheduler = RefreshScheduler(refresh, interval_seconds=10, clock=mock_clock)

        with caplog.at_level(logging.ERROR, logger="orchestrator.scheduler"):
            assert await scheduler.tick() is False

        assert scheduler.failure_count == 1
        assert any("upstream unavailable" in r.getMessage() for r in caplog.records)


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_and_stop(self, mock_clock):
        async def refresh():
            mock_clock.advance(seconds=2)

        sleep = FakeSleep(stop_after=3)
        scheduler = RefreshScheduler(refresh, interval_seconds=10, clock=mock_clock, sleep=sleep)

        scheduler.start()
        assert scheduler.is_running

        await asyncio.wait_for(sleep.reached.wait(), timeout=5)
        await scheduler.stop()

        assert not scheduler.is_running
        assert scheduler.tick_count >= 3
        assert sleep.delays[:3] == [8.0, 8.0, 8.0]

    @pytest.mark.asyncio
    async def test_slow_refresh_does_not_wait(self, mock_clock):
        async def refresh():
            mock_clock.advance(seconds=30)

        sleep = FakeSleep(stop_after=1)
        scheduler = RefreshScheduler(refresh, interval_seconds=10, clock=mock_clock, sleep=sleep)

        scheduler.start()
        await asyncio.wait_for(sleep.reached.wait(), timeout=5)
        await scheduler.stop()

        assert sleep.delays[0] == 0.0

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_loop(self, mock_clock):
        async def refresh():
            raise RuntimeError("flaky")

        sleep = FakeSleep(stop_after=2)
        scheduler = RefreshScheduler(refresh, interval_seconds=5, clock=mock_clock, sleep=sleep)

        scheduler.start()
        await asyncio.wait_for(sleep.reached.wait(), timeout=5)
        await scheduler.stop()

        assert scheduler.failure_count >= 2

    @pytest.mark.asyncio
    async def test_double_start_warns(self, mock_clock, caplog):
        async def refresh():
            pass

        sleep = FakeSleep(stop_after=1)
        scheduler = RefreshScheduler(refresh, interval_seconds=5, clock=mock_clock, sleep=sleep)

        scheduler.start()
        with caplog.at_level(logging.WARNING, logger="orchestrator.scheduler"):
            scheduler.start()
        await scheduler.stop()

        assert any("already running" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_stop_without_start(self, mock_clock):
        async def refresh():
            pass

        scheduler = RefreshScheduler(refresh, interval_seconds=5, clock=mock_clock)
        await scheduler.stop()

        assert not scheduler.is_running
        assert scheduler.tick_count == 0
