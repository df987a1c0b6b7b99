"""
clock.py - Time sources for the bottle ledger

The ledger never reads system time directly; it asks an injected Clock.

Classes:
- Clock: Protocol defining the time interface
- SystemClock: Wall-clock time in UTC, never running backwards
- ManualClock: Explicitly advanced time for tests, simulations and replay
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """
    Protocol for time sources.

    Implementations must return non-decreasing datetimes from now().
    """

    def now(self) -> datetime:
        """Return the current time."""
        ...


class SystemClock:
    """
    Wall-clock time in UTC.

    The system clock can step backwards (NTP corrections); readings are
    clamped to the last value returned so callers always see monotonic time.
    """

    def __init__(self):
        self._last: Optional[datetime] = None

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        if self._last is not None and current < self._last:
            return self._last
        self._last = current
        return current

    def __repr__(self):
        return "SystemClock()"


class ManualClock:
    """
    Clock that only moves when told to.

    Time can only move forward, never backward.

    Example:
        clock = ManualClock(datetime(2025, 1, 1))
        ledger = BottleLedger("main", writer="relayer", clock=clock)
        clock.advance(timedelta(days=31))
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        """
        Args:
            initial_time: Starting time (default: 1970-01-01)
        """
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)

    def now(self) -> datetime:
        return self._current_time

    def advance_to(self, new_time: datetime) -> None:
        """
        Move the clock to a new time.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    def advance(self, delta: timedelta) -> datetime:
        """Move the clock forward by delta and return the new time."""
        if delta < timedelta(0):
            raise ValueError(f"Cannot move time backwards by {delta}")
        self._current_time = self._current_time + delta
        return self._current_time

    def __repr__(self):
        return f"ManualClock({self._current_time.isoformat()})"
