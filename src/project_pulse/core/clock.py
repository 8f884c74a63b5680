"""
Clock capability for Project Pulse.

Freshness and expiry checks read time through a Clock so tests can drive
them with fake time.
"""

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Source of wall-clock time in epoch milliseconds."""

    @abstractmethod
    def now_millis(self) -> int:
        """Return the current time in milliseconds since the epoch."""
        pass


class SystemClock(Clock):
    """Clock backed by the system time."""

    def now_millis(self) -> int:
        return int(time.time() * 1000)
