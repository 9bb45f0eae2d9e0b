"""
This module resolves recurring collection rules into concrete collection dates.

Every function here is pure: rules and garbage types are an immutable snapshot
passed in by the caller, and the same inputs always give the same output.
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from .dates import (MONTH_MODE, WEEK_MODE, day_of_week, elapsed_weeks,
                    iso_week_number, month_dates, parse_local_date, week_dates)
from .models import (CollectionDay, CollectionSchedule, GarbageType,
                     NextCollection)

logger = logging.getLogger(__name__)

# Fortnightly rules alternate on the ISO week grid instead of elapsed days.
ISO_WEEK_INTERVAL = 2


def _find_garbage_type(
    garbage_type_id: str, garbage_types: Sequence[GarbageType]
) -> Optional[GarbageType]:
    for garbage_type in garbage_types:
        if garbage_type.id == garbage_type_id:
            return garbage_type
    return None


def is_recurrence_week(schedule: CollectionSchedule, start: date, target: date) -> bool:
    """
    Checks whether the target date falls on an eligible week of the rule.

    Interval 2 compares ISO week-number parity; every other interval counts
    whole elapsed weeks since the start date. The two methods can disagree
    around years with 53 ISO weeks, and both are kept as they are.
    """
    if schedule.week_interval == ISO_WEEK_INTERVAL:
        return (iso_week_number(target) - iso_week_number(start)) % 2 == 0
    return elapsed_weeks(start, target) % schedule.week_interval == 0


def schedule_matches(schedule: CollectionSchedule, target: date) -> bool:
    """
    Checks whether a single rule produces a collection on the target date.

    Raises:
        InvalidScheduleDateError: If the rule's start or end date is malformed.
    """
    if not schedule.is_active or schedule.day_of_week != day_of_week(target):
        return False

    start = parse_local_date(schedule.start_date)
    if target < start:
        return False

    if schedule.end_date:
        end = parse_local_date(schedule.end_date)
        if target > end:
            return False

    return is_recurrence_week(schedule, start, target)


def collections_on_date(
    target: date,
    schedules: Sequence[CollectionSchedule],
    garbage_types: Sequence[GarbageType],
) -> List[GarbageType]:
    """
    Returns the garbage types collected on a date.

    Each matching rule contributes one entry, in rule order. Rules that point
    at an unknown garbage type are skipped.

    Args:
        target: The calendar date to evaluate.
        schedules: The rules of one zone.
        garbage_types: The garbage type catalog.

    Returns:
        A list of GarbageType objects, possibly empty.

    Raises:
        InvalidScheduleDateError: If any evaluated rule has a malformed date.
    """
    collections = []
    for schedule in schedules:
        if not schedule_matches(schedule, target):
            continue
        garbage_type = _find_garbage_type(schedule.garbage_type_id, garbage_types)
        if garbage_type is None:
            logger.debug(
                f"Schedule {schedule.id} references unknown garbage type {schedule.garbage_type_id}."
            )
            continue
        collections.append(garbage_type)
    return collections


def expand_range(
    anchor: date,
    schedules: Sequence[CollectionSchedule],
    garbage_types: Sequence[GarbageType],
    mode: str = WEEK_MODE,
) -> List[CollectionDay]:
    """
    Resolves every day of the week or month containing the anchor date.

    In week mode the range runs Monday through Sunday; in month mode it covers
    the first through the last day of the month. Days are in calendar order.

    Raises:
        ValueError: If the mode is neither "week" nor "month".
    """
    if mode == WEEK_MODE:
        dates = week_dates(anchor)
    elif mode == MONTH_MODE:
        dates = month_dates(anchor)
    else:
        raise ValueError(f"Unknown range mode: {mode!r}")

    return [
        CollectionDay(day, collections_on_date(day, schedules, garbage_types))
        for day in dates
    ]


def get_weekly_collections(
    anchor: date,
    schedules: Sequence[CollectionSchedule],
    garbage_types: Sequence[GarbageType],
) -> List[CollectionDay]:
    """Resolves the Monday-to-Sunday week containing the anchor date."""
    return expand_range(anchor, schedules, garbage_types, WEEK_MODE)


def get_monthly_collections(
    anchor: date,
    schedules: Sequence[CollectionSchedule],
    garbage_types: Sequence[GarbageType],
) -> List[CollectionDay]:
    """Resolves the calendar month containing the anchor date."""
    return expand_range(anchor, schedules, garbage_types, MONTH_MODE)


def next_date_for_schedule(today: date, schedule: CollectionSchedule) -> date:
    """
    Returns the next collection date of a rule after today.

    This is plain weekly advancement: it ignores the rule's validity window and
    does not apply the ISO-week alternation of fortnightly rules. When today is
    the rule's weekday the result is a full interval ahead, never today.
    """
    days_until = (schedule.day_of_week - day_of_week(today) + 7) % 7
    if days_until == 0:
        days_until = schedule.week_interval * 7
    return today + timedelta(days=days_until)


def next_occurrences(
    today: date,
    schedules: Sequence[CollectionSchedule],
    garbage_types: Sequence[GarbageType],
) -> List[NextCollection]:
    """
    Returns the soonest upcoming date of each garbage type with an active rule.

    When several rules name the same type, the earliest candidate wins. The
    result is sorted by date; ties keep the order in which types first appear.
    """
    best: Dict[str, NextCollection] = {}
    for schedule in schedules:
        if not schedule.is_active:
            continue
        garbage_type = _find_garbage_type(schedule.garbage_type_id, garbage_types)
        if garbage_type is None:
            continue
        candidate = next_date_for_schedule(today, schedule)
        current = best.get(garbage_type.id)
        if current is None or candidate < current.next_date:
            best[garbage_type.id] = NextCollection(garbage_type, candidate)

    return sorted(best.values(), key=lambda entry: entry.next_date)
