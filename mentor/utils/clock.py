"""
Clock abstractions so services never read the wall clock directly.

Both clocks are monotonic: ``now()`` never returns an earlier time than a
previous call on the same clock, so trigger times and due checks are not
disturbed by system clock adjustments.
"""

import threading
import time
from datetime import datetime, timedelta
from typing import Optional, Protocol

from .timestamp_utils import to_datetime, utc_now


class Clock(Protocol):
    """Anything that can tell the current UTC time."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Clock anchored to the system time at creation and advanced by the monotonic timer."""

    def __init__(self):
        self._anchor = utc_now()
        self._anchor_monotonic = time.monotonic()

    def now(self) -> datetime:
        return self._anchor + timedelta(seconds=time.monotonic() - self._anchor_monotonic)


class ManualClock:
    """Clock that only moves when told to. Used to simulate time in tests."""

    def __init__(self, start: Optional[datetime] = None):
        self._lock = threading.Lock()
        self._now = to_datetime(start) if start is not None else utc_now()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, delta: timedelta) -> datetime:
        """Move the clock forward and return the new time."""
        if delta < timedelta(0):
            raise ValueError('ManualClock cannot move backwards')
        with self._lock:
            self._now = self._now + delta
            return self._now

    def set(self, value: datetime) -> None:
        """Jump to a later time."""
        value = to_datetime(value)
        with self._lock:
            if value < self._now:
                raise ValueError('ManualClock cannot move backwards')
            self._now = value
