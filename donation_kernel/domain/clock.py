"""
Time source for the ledger.

Services never read the wall clock themselves.  Consumption timestamps,
donation dates and gift delivery times all come from the Clock a service
was constructed with, so tests can pin and move time explicitly.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

_EPOCH = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current instant, timezone-aware, in UTC."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Starts at 2024-01-01 12:00 UTC unless given another instant.  Repeated
    ``now()`` calls return the same value.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or _EPOCH

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> None:
        self._current += timedelta(days=days)

    def tick(self) -> datetime:
        self.advance()
        return self._current


def ensure_utc(value: datetime | None) -> datetime | None:
    """Give a naive timestamp read back from SQLite its UTC offset."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
