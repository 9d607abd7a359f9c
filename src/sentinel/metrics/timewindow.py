"""
Calendar-day windows in a reporting timezone.

A civil day is ``[local 00:00, next local 00:00)``, which is 23 or 25 hours
long on DST transition days. Windows are half-open UTC instants so adjacent
days never overlap.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from sentinel.utils.clock import utcnow


@dataclass(frozen=True)
class DateWindow:
    """Half-open ``[start, end)`` interval of aware UTC datetimes."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


def parse_date(value: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If the value is not a valid calendar date
    """
    return date.fromisoformat(value)


def day_window(day: date, tz_name: str) -> DateWindow:
    """
    UTC instants bounding a civil day in ``tz_name``.

    Args:
        day: Calendar date
        tz_name: IANA timezone name

    Returns:
        DateWindow from local midnight to the following local midnight
    """
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return DateWindow(
        start=start.astimezone(timezone.utc),
        end=end.astimezone(timezone.utc),
    )


def today(tz_name: str, now: Optional[datetime] = None) -> date:
    """Current calendar date in ``tz_name``."""
    now = now or utcnow()
    return now.astimezone(ZoneInfo(tz_name)).date()


def days_ago(days: int, tz_name: str, now: Optional[datetime] = None) -> date:
    return today(tz_name, now) - timedelta(days=days)


def yesterday(tz_name: str, now: Optional[datetime] = None) -> date:
    return days_ago(1, tz_name, now)


def date_range(start: date, end: date) -> List[date]:
    """Inclusive list of dates from ``start`` to ``end`` (empty if reversed)."""
    dates = []
    current = start
    while current <= end:
        dates.append(current)
        current += timedelta(days=1)
    return dates
