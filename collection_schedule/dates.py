"""
This module provides the calendar-date primitives used by the schedule resolver.

All values are plain ``datetime.date`` objects; nothing here goes through a
timestamp or a timezone, so a date can never drift by a day.
"""
import calendar
import re
from datetime import date, timedelta
from typing import List

from .exceptions import InvalidScheduleDateError

WEEK_MODE = "week"
MONTH_MODE = "month"
RANGE_MODES = (WEEK_MODE, MONTH_MODE)

iso_date_pattern = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:$|[T ])")


def parse_local_date(value: str) -> date:
    """
    Parses the date part of an ISO string into a calendar date.

    The ``YYYY-MM-DD`` components must stand alone or be followed by a time
    part, so a value such as ``2024-01-01T00:00:00Z`` still maps to January 1st.

    Raises:
        InvalidScheduleDateError: If the value is not a valid date.
    """
    if isinstance(value, date):
        return value
    match = iso_date_pattern.match(str(value).strip()) if value is not None else None
    if not match:
        raise InvalidScheduleDateError(f"Invalid schedule date: {value!r}")
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise InvalidScheduleDateError(f"Invalid schedule date: {value!r}") from e


def day_of_week(day: date) -> int:
    """Returns the weekday with Sunday as 0 and Saturday as 6."""
    return (day.weekday() + 1) % 7


def iso_week_number(day: date) -> int:
    """Returns the ISO-8601 week number (Monday start, week 1 holds the first Thursday)."""
    return day.isocalendar()[1]


def elapsed_weeks(start: date, end: date) -> int:
    """Whole weeks elapsed between two dates, floored."""
    return (end - start).days // 7


def week_start(day: date) -> date:
    """Returns the Monday on or before the given date."""
    return day - timedelta(days=day.weekday())


def week_dates(day: date) -> List[date]:
    """Returns Monday through Sunday of the week containing the given date."""
    monday = week_start(day)
    return [monday + timedelta(days=offset) for offset in range(7)]


def month_dates(day: date) -> List[date]:
    """Returns every date of the calendar month containing the given date."""
    days_in_month = calendar.monthrange(day.year, day.month)[1]
    return [date(day.year, day.month, number) for number in range(1, days_in_month + 1)]


def shift_anchor(anchor: date, mode: str, step: int) -> date:
    """
    Moves a navigation anchor by whole periods.

    Weeks move by 7 days; months move by calendar months with the day clamped
    to the length of the target month (31 January + 1 month is 29 February).
    """
    if mode == WEEK_MODE:
        return anchor + timedelta(days=7 * step)
    if mode == MONTH_MODE:
        month_index = anchor.year * 12 + (anchor.month - 1) + step
        year, month = divmod(month_index, 12)
        month += 1
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, min(anchor.day, last_day))
    raise ValueError(f"Unknown range mode: {mode!r}")
