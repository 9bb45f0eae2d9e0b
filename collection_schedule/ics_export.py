"""
This module exports resolved collection days as an iCalendar document.

It uses the icalendar library to build the calendar.
"""
from datetime import timedelta
from typing import Sequence

from icalendar import Calendar, Event

from .config import DEFAULT_LANGUAGE
from .models import CollectionDay

PRODID = "-//Dia do Lixo//Collection Calendar//PT"


def build_calendar(
    days: Sequence[CollectionDay], language: str = DEFAULT_LANGUAGE
) -> Calendar:
    """Builds a calendar with one all-day event per garbage type and day."""
    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")

    seen_uids = set()
    for day in days:
        for garbage_type in day.garbage_types:
            uid = f"{day.date.isoformat()}-{garbage_type.id}@dia-do-lixo"
            # Two rules may name the same type on the same day.
            if uid in seen_uids:
                continue
            seen_uids.add(uid)
            event = Event()
            event.add("uid", uid)
            event.add("summary", garbage_type.display_name(language))
            event.add("dtstart", day.date)
            event.add("dtend", day.date + timedelta(days=1))
            event.add("categories", [garbage_type.code])
            if garbage_type.color_hex:
                event.add("color", garbage_type.color_hex)
            cal.add_component(event)
    return cal


def export_ics(days: Sequence[CollectionDay], language: str = DEFAULT_LANGUAGE) -> bytes:
    """Serializes the resolved days to iCalendar bytes."""
    return build_calendar(days, language).to_ical()
