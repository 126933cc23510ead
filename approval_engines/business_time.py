"""
approval_engines.business_time -- Business-calendar arithmetic.

Responsibility:
    Count the business minutes between two instants, and find the instant a
    number of business minutes after a start.  Only time inside
    ``[workday_start, workday_end)`` on a configured workday that is not a
    holiday counts; everything else contributes zero.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``now`` is always passed
    in by the caller.

Invariants enforced:
    - Windows are evaluated in the calendar's timezone; durations are
      measured in UTC so DST transitions do not distort them.
    - business_minutes_between(a, b) == 0 whenever b <= a.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from approval_kernel.domain.settings import SettingsSnapshot

# Upper bound on calendar days searched for a deadline.
_MAX_SEARCH_DAYS = 3660


@dataclass(frozen=True)
class BusinessCalendar:
    """Working window, workdays (ISO weekday numbers) and holidays."""

    workday_start: time
    workday_end: time
    workdays: frozenset[int]
    holidays: frozenset[date] = frozenset()
    timezone: str = "UTC"

    @classmethod
    def from_settings(cls, settings: SettingsSnapshot) -> BusinessCalendar:
        return cls(
            workday_start=settings.workday_start,
            workday_end=settings.workday_end,
            workdays=settings.workdays,
            holidays=settings.holidays,
            timezone=settings.timezone,
        )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def is_business_day(self, day: date) -> bool:
        return day.isoweekday() in self.workdays and day not in self.holidays

    def window(self, day: date) -> tuple[datetime, datetime]:
        """The day's working window as UTC instants."""
        tz = self.tz
        opens = datetime.combine(day, self.workday_start, tzinfo=tz)
        closes = datetime.combine(day, self.workday_end, tzinfo=tz)
        return opens.astimezone(timezone.utc), closes.astimezone(timezone.utc)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def business_minutes_between(
    start: datetime,
    end: datetime,
    calendar: BusinessCalendar,
) -> int:
    """Whole business minutes elapsed from ``start`` to ``end``."""
    start_utc, end_utc = _to_utc(start), _to_utc(end)
    if end_utc <= start_utc:
        return 0

    tz = calendar.tz
    day = start_utc.astimezone(tz).date()
    last_day = end_utc.astimezone(tz).date()
    total = timedelta()
    while day <= last_day:
        if calendar.is_business_day(day):
            opens, closes = calendar.window(day)
            lo = max(opens, start_utc)
            hi = min(closes, end_utc)
            if hi > lo:
                total += hi - lo
        day += timedelta(days=1)

    return int(total.total_seconds() // 60)


def add_business_minutes(
    start: datetime,
    minutes: int,
    calendar: BusinessCalendar,
) -> datetime:
    """The UTC instant at which ``minutes`` business minutes have elapsed.

    Raises:
        ValueError: If minutes is negative, or no business day exists within
            the search horizon (every day a holiday).
    """
    if minutes < 0:
        raise ValueError(f"minutes must be >= 0, got {minutes}")

    cursor = _to_utc(start)
    remaining = timedelta(minutes=minutes)
    tz = calendar.tz
    day = cursor.astimezone(tz).date()
    for _ in range(_MAX_SEARCH_DAYS):
        if calendar.is_business_day(day):
            opens, closes = calendar.window(day)
            lo = max(opens, cursor)
            if closes > lo:
                available = closes - lo
                if remaining <= available:
                    return lo + remaining
                remaining -= available
        day += timedelta(days=1)
    raise ValueError("No business time found within the search horizon")
