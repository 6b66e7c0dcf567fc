"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timezone


def add_years(from_date: date, years: int) -> date:
    """
    Add calendar years, preserving month and day.

    Feb 29 falls back to Feb 28 when the target year is not a leap year.
    """
    target_year = from_date.year + years
    last_day = calendar.monthrange(target_year, from_date.month)[1]
    return from_date.replace(year=target_year, day=min(from_date.day, last_day))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
