"""
This module defines the NotificationService for planning and preparing
collection reminders.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Sequence

from ..config import DEFAULT_LANGUAGE, REMINDER_HOUR, REMINDER_WEEKS_AHEAD
from ..exceptions import InvalidScheduleDateError
from ..models import CollectionSchedule, GarbageType, Reminder
from ..resolver import collections_on_date
from .persistence_service import PersistenceService

logger = logging.getLogger(__name__)

REMINDER_TEMPLATES = {
    "pt": "{emoji} Dia do Lixo - Amanhã será recolhido: {names}",
    "en": "{emoji} Garbage Day - Tomorrow's collection: {names}",
    "es": "{emoji} Día de la Basura - Mañana se recoge: {names}",
}

GARBAGE_TYPE_EMOJIS = {
    "papel": "📄",
    "embalagens": "📦",
    "bioresiduos": "🍃",
    "indiferenciados": "🗑️",
    "vidro": "🍾",
    "metal": "🔧",
}


def get_garbage_type_emoji(code: str) -> str:
    """Returns an emoji for a garbage type code."""
    return GARBAGE_TYPE_EMOJIS.get(code, "🗑️")


class NotificationService:
    """Handles the business logic for creating and sending reminders."""

    def __init__(
        self,
        persistence_service: PersistenceService,
        reminder_hour: int = REMINDER_HOUR,
    ):
        self.persistence = persistence_service
        self.reminder_hour = reminder_hour

    def plan_reminders(
        self,
        now: datetime,
        schedules: Sequence[CollectionSchedule],
        garbage_types: Sequence[GarbageType],
        weeks: int = REMINDER_WEEKS_AHEAD,
    ) -> List[Reminder]:
        """
        Plans the reminders of the coming weeks.

        Every collection from tomorrow on gets one reminder at the reminder hour
        of the previous evening. Reminders whose time has already passed are
        left out.
        """
        reminders = []
        today = now.date()
        for offset in range(1, weeks * 7 + 1):
            collection_date = today + timedelta(days=offset)
            notify_at = datetime.combine(
                collection_date - timedelta(days=1), time(self.reminder_hour)
            )
            if notify_at < now:
                continue
            for garbage_type in collections_on_date(
                collection_date, schedules, garbage_types
            ):
                reminders.append(Reminder(garbage_type, collection_date, notify_at))
        return reminders

    def build_message(
        self, garbage_types: Sequence[GarbageType], language: str = DEFAULT_LANGUAGE
    ) -> str:
        """Builds the reminder text for the garbage types collected tomorrow."""
        names = []
        for garbage_type in garbage_types:
            name = garbage_type.display_name(language)
            if name not in names:
                names.append(name)
        template = REMINDER_TEMPLATES.get(language, REMINDER_TEMPLATES[DEFAULT_LANGUAGE])
        emoji = get_garbage_type_emoji(garbage_types[0].code) if garbage_types else "🗑️"
        return template.format(emoji=emoji, names=", ".join(names))

    def get_due_notifications(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Gathers all reminders that are due to be sent.

        A chat is due once the reminder hour has passed, tomorrow has at least
        one collection in its zone and it was not reminded about tomorrow yet.

        Returns:
            A list of dictionaries, where each dictionary represents a notification task.
        """
        now = now or datetime.now()
        if now.hour < self.reminder_hour:
            return []

        tomorrow = now.date() + timedelta(days=1)
        notification_tasks = []

        with self.persistence as p:
            chats = p.get_chats_with_notifications()
            garbage_types = p.get_garbage_types()
            schedules_by_zone = {
                zone_id: p.get_schedules_for_zone(zone_id)
                for zone_id in {chat["zone_id"] for chat in chats}
            }

        for chat in chats:
            if chat["last_notified"] == tomorrow.isoformat():
                continue

            try:
                collections = collections_on_date(
                    tomorrow, schedules_by_zone[chat["zone_id"]], garbage_types
                )
            except InvalidScheduleDateError as e:
                logger.error(
                    f"Skipping reminders for zone {chat['zone_id']} due to invalid schedule data: {e}"
                )
                continue

            if not collections:
                continue

            notification_tasks.append(
                {
                    "chat_id": chat["chat_id"],
                    "message": self.build_message(
                        collections, chat["language"] or DEFAULT_LANGUAGE
                    ),
                    "collection_date": tomorrow,
                }
            )
        return notification_tasks

    def log_pending_notification(self, chat_id: int, collection_date: date) -> int:
        """Logs a pending notification and returns the log ID."""
        with self.persistence as p:
            return p.create_notification_log(
                chat_id, collection_date.isoformat(), "pending"
            )

    def update_notification_log(
        self, log_id: int, status: str, error_message: Optional[str] = None
    ) -> None:
        """Updates the status of a notification log."""
        with self.persistence as p:
            p.update_notification_log_status(log_id, status, error_message)
