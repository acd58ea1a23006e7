"""Clocks — the single source of "now" for the Recovery domain.

Every timestamp the session store writes and every threshold the sweep
evaluates comes from an injected clock, so tests can move time explicitly.
"""

import threading
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


class Clock(ABC):
    """Abstract time source returning timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):
    """Wall clock that never goes backwards.

    A system time adjustment can move ``datetime.now`` back; readings are
    clamped to the last value handed out.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = datetime.now(UTC)
        with self._lock:
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
        return current


class ManualClock(Clock):
    """Clock that only moves when told to. Used by tests and replays."""

    def __init__(self, start: datetime | None = None):
        start = start or datetime(2024, 1, 1, tzinfo=UTC)
        if start.tzinfo is None:
            start = start.replace(tzinfo=UTC)
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta | None = None, **kwargs) -> datetime:
        """Move the clock forward by ``delta`` or by ``timedelta(**kwargs)``."""
        delta = delta if delta is not None else timedelta(**kwargs)
        if delta < timedelta(0):
            raise ValueError("ManualClock cannot move backwards")
        self._current = self._current + delta
        return self._current

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        if moment < self._current:
            raise ValueError("ManualClock cannot move backwards")
        self._current = moment
