"""
Clock -- Injectable time source.

Responsibility:
    Every timestamp the engine records (role grants, step history,
    completion and escalation times, stage completion) and every
    "is it overdue yet" comparison reads time through a ``Clock`` passed
    in by the composition root.  Nothing in the domain, engines or
    services calls ``datetime.now()`` directly.

Architecture position:
    Kernel > Domain -- zero I/O except ``SystemClock``, the one sanctioned
    read of wall-clock time.
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
        """Get the current time."""
        ...


class SystemClock(Clock):
    """Production clock that returns actual system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()``
    or ``set_time()`` is called.  Workflow tests move it by hours and days
    to exercise estimated completion, statistics and escalation.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(
            2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc
        )

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._current = time

    def advance(
        self,
        *,
        seconds: float = 0,
        hours: float = 0,
        days: float = 0,
    ) -> datetime:
        """Move the clock forward and return the new time."""
        self._current = self._current + timedelta(
            seconds=seconds, hours=hours, days=days
        )
        return self._current
