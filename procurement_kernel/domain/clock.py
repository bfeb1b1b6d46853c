"""
Injectable time source for notification timestamps.

Services take a ``Clock`` instead of calling ``datetime.now()`` so tests can
pin and step the time that ends up on notification rows.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

# Start of the 2081/82 fiscal year used across the test fixtures
DEFAULT_TEST_TIME = datetime(2024, 7, 16, 9, 0, tzinfo=UTC)


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """Frozen clock; time only moves when ``advance()`` is called."""

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)
