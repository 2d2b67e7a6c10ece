"""
Clock -- injectable time source.

Responsibility:
    Lets guards, services and the escalation sweep ask for "now" through a
    constructor-injected object instead of calling ``datetime.now()``.
    Revision deadlines and expiry checks are only testable this way.

Architecture position:
    Kernel > Domain -- zero I/O except SystemClock, the one sanctioned
    boundary for wall-clock time.

Failure modes:
    - DeterministicClock.set_time raises ValueError for naive datetimes.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        ``now()`` returns a timezone-aware UTC ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current UTC time."""
        ...


class SystemClock(Clock):
    """Production clock returning actual system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()``
    or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        start = fixed_time or datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)
        self._require_aware(start)
        self._current = start.astimezone(timezone.utc)

    @staticmethod
    def _require_aware(value: datetime) -> None:
        if value.tzinfo is None:
            raise ValueError("DeterministicClock requires timezone-aware datetimes")

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        """Jump to a specific instant."""
        self._require_aware(time)
        self._current = time.astimezone(timezone.utc)

    def advance(self, seconds: float = 0, *, hours: float = 0, days: float = 0) -> datetime:
        """Move time forward and return the new instant."""
        self._current += timedelta(seconds=seconds, hours=hours, days=days)
        return self._current
