"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that domain, engine and service code
    never call ``datetime.now()`` directly.  SLA computation and every
    recorded timestamp (submitted_at, approved_at, completed_at) go through
    an injected Clock.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC.

    SQLite drops tzinfo on round-trip; naive values coming back from the
    database are UTC by convention.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need current time receive a Clock instance via
        constructor injection.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """
    Production clock that returns actual system time.

    Non-goals:
        Not suitable for deterministic tests.
    """

    def now(self) -> datetime:
        """Get current system time with timezone."""
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        """
        Args:
            fixed_time: Starting time.  Defaults to Monday 2024-01-01 09:00 UTC.
        """
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 9, 0, 0, tzinfo=timezone.utc
        )
        self._advance = timedelta()

    def now(self) -> datetime:
        """Get the fixed/controlled time."""
        return self._fixed_time + self._advance

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance = timedelta()

    def advance(self, seconds: int = 0, minutes: int = 0, days: int = 0) -> None:
        """Advance the clock."""
        self._advance += timedelta(seconds=seconds, minutes=minutes, days=days)
