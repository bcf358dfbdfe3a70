"""Calendar helpers for questy_coach.

All engine timestamps are naive local datetimes; a "day" is a
calendar date in the same local clock.
"""

import math
from datetime import date, datetime, time, timedelta

__all__ = [
    "SECONDS_PER_DAY",
    "ceil_days_between",
    "days_between",
    "end_of_day",
    "is_weekend",
    "next_saturday",
    "next_weekday",
    "now",
    "start_of_day",
    "to_date",
]

SECONDS_PER_DAY = 86400


def now() -> datetime:
    """Current local time."""
    return datetime.now()


def to_date(value: date | datetime) -> date:
    """Normalize a date or datetime to a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(value: date | datetime) -> datetime:
    """Midnight at the start of the given day."""
    return datetime.combine(to_date(value), time.min)


def end_of_day(value: date | datetime) -> datetime:
    """Last representable moment of the given day (23:59:59.999)."""
    return datetime.combine(to_date(value), time(23, 59, 59, 999000))


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from earlier to later (floored, may be negative)."""
    return math.floor((later - earlier).total_seconds() / SECONDS_PER_DAY)


def ceil_days_between(earlier: datetime, later: datetime) -> int:
    """Days from earlier to later rounded up."""
    return math.ceil((later - earlier).total_seconds() / SECONDS_PER_DAY)


def is_weekend(value: date | datetime) -> bool:
    """Saturday or Sunday."""
    return to_date(value).weekday() >= 5


def next_saturday(value: date | datetime) -> date:
    """Closest Saturday strictly after the given day."""
    day = to_date(value)
    days_until = 7 if day.weekday() == 5 else (5 - day.weekday()) % 7
    return day + timedelta(days=days_until)


def next_weekday(value: date | datetime) -> date:
    """First Monday-Friday day strictly after the given day."""
    day = to_date(value) + timedelta(days=1)
    while is_weekend(day):
        day += timedelta(days=1)
    return day
