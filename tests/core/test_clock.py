"""
Tests for the clock abstraction.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.clock import ClockFactory, MockClock, SystemClock
from orchestrator import AssessmentOrchestrator, OrchestratorConfig


START = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestMockClock:

    def test_time_only_moves_on_request(self):
        clock = MockClock(START)

        assert clock.now() == START
        assert clock.monotonic() == 0.0

        clock.advance(seconds=90)

        assert clock.now() == START + timedelta(seconds=90)
        assert clock.elapsed_since(0.0) == 90.0

    def test_advance_with_kwargs(self):
        clock = MockClock(START)
        clock.advance(minutes=5)
        assert clock.monotonic() == 300.0

    def test_naive_start_is_utc(self):
        clock = MockClock(datetime(2024, 6, 1, 12, 0))
        assert clock.now() == START

    def test_cannot_move_backwards(self):
        clock = MockClock(START)

        with pytest.raises(ValueError):
            clock.advance(seconds=-1)
        with pytest.raises(ValueError):
            clock.set_time(START - timedelta(days=1))

    def test_set_time(self):
        clock = MockClock(START)
        clock.set_time(START + timedelta(hours=1))
        assert clock.monotonic() == 3600.0


class TestSystemClock:

    def test_now_is_utc(self):
        assert SystemClock().now().tzinfo == timezone.utc

    def test_monotonic_never_decreases(self):
        clock = SystemClock()
        first = clock.monotonic()
        assert clock.monotonic() >= first
        assert clock.elapsed_since(first) >= 0.0


class TestClockFactory:

    def test_use_mock_is_scoped(self):
        with ClockFactory.use_mock(START) as clock:
            assert ClockFactory.get_clock() is clock
        assert ClockFactory.get_clock() is not clock

    def test_orchestrator_uses_default_clock(self):
        with ClockFactory.use_mock(START):
            orchestrator = AssessmentOrchestrator(OrchestratorConfig(concurrent=False))
            assert orchestrator.get_status()["current_time"] == START.isoformat()
