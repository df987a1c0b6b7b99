"""
test_clock.py - Unit tests for clock.py
"""

import pytest
from datetime import datetime, timedelta, timezone

from bottle_ledger import Clock, SystemClock, ManualClock


class TestManualClock:

    def test_default_start(self):
        assert ManualClock().now() == datetime(1970, 1, 1)

    def test_initial_time(self):
        t = datetime(2025, 1, 1, 9, 30)
        assert ManualClock(t).now() == t

    def test_advance_to(self):
        clock = ManualClock(datetime(2025, 1, 1))
        clock.advance_to(datetime(2025, 1, 15))
        assert clock.now() == datetime(2025, 1, 15)

    def test_advance_to_same_time_allowed(self):
        t = datetime(2025, 1, 1)
        clock = ManualClock(t)
        clock.advance_to(t)
        assert clock.now() == t

    def test_advance_to_rejects_past(self):
        clock = ManualClock(datetime(2025, 1, 15))
        with pytest.raises(ValueError, match="backwards"):
            clock.advance_to(datetime(2025, 1, 1))

    def test_advance_by_delta(self):
        clock = ManualClock(datetime(2025, 1, 1))
        assert clock.advance(timedelta(days=30, seconds=1)) == datetime(2025, 1, 31, 0, 0, 1)

    def test_advance_rejects_negative_delta(self):
        clock = ManualClock(datetime(2025, 1, 1))
        with pytest.raises(ValueError):
            clock.advance(timedelta(seconds=-1))

    def test_is_clock(self):
        assert isinstance(ManualClock(), Clock)


class TestSystemClock:

    def test_returns_aware_utc(self):
        now = SystemClock().now()
        assert now.tzinfo == timezone.utc

    def test_non_decreasing(self):
        clock = SystemClock()
        readings = [clock.now() for _ in range(100)]
        assert readings == sorted(readings)

    def test_clamps_backward_steps(self):
        clock = SystemClock()
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        clock._last = future
        assert clock.now() == future

    def test_is_clock(self):
        assert isinstance(SystemClock(), Clock)
