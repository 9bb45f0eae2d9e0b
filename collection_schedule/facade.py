"""
This module defines the central facade for the collection calendar application.
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

import holidays

from .config import DEFAULT_COUNTRY_CODE, DEFAULT_LANGUAGE
from .dates import MONTH_MODE, WEEK_MODE
from .exceptions import DataStoreError, InvalidScheduleDateError
from .ics_export import export_ics
from .models import (City, CollectionDay, CollectionSchedule, GarbageType,
                     NextCollection, Reminder, Zone)
from .resolver import expand_range, next_occurrences
from .services.notification_service import NotificationService
from .services.persistence_service import PersistenceService
from .services.settings_service import SettingsService
from .services.sync_service import CatalogSyncService
from .zone_matcher import find_city_matches, find_zone_matches

logger = logging.getLogger(__name__)


class CollectionCalendarFacade:
    """
    The central entry point for the collection calendar application.
    It loads zone snapshots from the local store and hands them to the resolver.
    """

    def __init__(
        self,
        persistence_service: PersistenceService,
        settings_service: SettingsService,
        notification_service: NotificationService,
        sync_service: CatalogSyncService,
    ):
        self.persistence_service = persistence_service
        self.settings_service = settings_service
        self.notification_service = notification_service
        self.sync_service = sync_service

    # --- Snapshot loading ---

    def load_snapshot(
        self, zone_id: str
    ) -> Tuple[List[CollectionSchedule], List[GarbageType]]:
        """
        Returns the rules of a zone and the garbage type catalog.

        A zone whose rules were never fetched is synced from the backend first.
        A synced zone without active rules is served as is.

        Raises:
            DataStoreError: If the zone has to be fetched and the backend fails.
        """
        with self.persistence_service as p:
            schedules = p.get_schedules_for_zone(zone_id)
            garbage_types = p.get_garbage_types()
            synced_at = p.get_zone_synced_at(zone_id)

        if synced_at is None or not garbage_types:
            logger.info(f"No cached snapshot for zone {zone_id}. Fetching from backend.")
            if not garbage_types:
                self.sync_service.sync_catalog()
            if synced_at is None:
                self.sync_service.sync_zone(zone_id)
            with self.persistence_service as p:
                schedules = p.get_schedules_for_zone(zone_id)
                garbage_types = p.get_garbage_types()
        return schedules, garbage_types

    def get_country_code(self, zone_id: str) -> str:
        """Returns the country of the zone's city, or the default country."""
        with self.persistence_service as p:
            zone = p.get_zone_by_id(zone_id)
            city = p.get_city_by_id(zone.city_id) if zone else None
        if city and city.country_code:
            return city.country_code
        return DEFAULT_COUNTRY_CODE

    def annotate_holidays(
        self, days: Sequence[CollectionDay], country_code: str
    ) -> List[CollectionDay]:
        """Adds public holiday names to the days that fall on one."""
        if not days:
            return []
        try:
            calendar = holidays.country_holidays(
                country_code, years={day.date.year for day in days}
            )
        except NotImplementedError:
            logger.warning(f"No holiday calendar available for country {country_code}.")
            return list(days)
        return [replace(day, holiday=calendar.get(day.date)) for day in days]

    # --- Calendar views ---

    def get_range(
        self, zone_id: str, anchor: date, mode: str = WEEK_MODE
    ) -> List[CollectionDay]:
        """
        Resolves the week or month containing the anchor date for a zone.

        Raises:
            DataStoreError: If the zone snapshot cannot be fetched.
            InvalidScheduleDateError: If a cached rule carries a malformed date.
            ValueError: If the mode is unknown.
        """
        schedules, garbage_types = self.load_snapshot(zone_id)
        try:
            days = expand_range(anchor, schedules, garbage_types, mode)
        except InvalidScheduleDateError as e:
            logger.error(f"Invalid schedule data for zone {zone_id}: {e}")
            raise
        return self.annotate_holidays(days, self.get_country_code(zone_id))

    def get_week(self, zone_id: str, anchor: date) -> List[CollectionDay]:
        """Resolves the Monday-to-Sunday week containing the anchor date."""
        return self.get_range(zone_id, anchor, WEEK_MODE)

    def get_month(self, zone_id: str, anchor: date) -> List[CollectionDay]:
        """Resolves the calendar month containing the anchor date."""
        return self.get_range(zone_id, anchor, MONTH_MODE)

    def get_next_collections(
        self, zone_id: str, today: Optional[date] = None
    ) -> List[NextCollection]:
        """Returns the next collection date of each garbage type of a zone."""
        schedules, garbage_types = self.load_snapshot(zone_id)
        return next_occurrences(today or date.today(), schedules, garbage_types)

    def get_upcoming_reminders(
        self, zone_id: str, now: Optional[datetime] = None
    ) -> List[Reminder]:
        """Plans the reminders of the coming weeks for a zone."""
        schedules, garbage_types = self.load_snapshot(zone_id)
        return self.notification_service.plan_reminders(
            now or datetime.now(), schedules, garbage_types
        )

    def export_calendar(
        self,
        zone_id: str,
        anchor: date,
        mode: str = MONTH_MODE,
        language: str = DEFAULT_LANGUAGE,
    ) -> bytes:
        """Exports the resolved week or month as an iCalendar document."""
        return export_ics(self.get_range(zone_id, anchor, mode), language)

    # --- Catalog lookups ---

    def get_cities(self) -> List[City]:
        """Returns the cached cities, syncing the catalog when it is empty."""
        with self.persistence_service as p:
            cities = p.get_cities()
        if not cities:
            self.sync_service.sync_catalog()
            with self.persistence_service as p:
                cities = p.get_cities()
        return cities

    def find_cities(self, query: str) -> List[City]:
        """Finds cities matching a free-text query."""
        return find_city_matches(query, self.get_cities())

    def find_zones(self, query: str, city_id: Optional[str] = None) -> List[Tuple[City, Zone]]:
        """Finds zones matching a free-text query, optionally within one city."""
        cities = self.get_cities()
        if city_id:
            cities = [city for city in cities if city.id == city_id]
        return find_zone_matches(query, cities)

    # --- Settings ---

    def choose_zone(self, chat_id: int, city_id: str, zone_id: str) -> bool:
        """
        Stores the zone of a chat and fetches its rules.

        Returns:
            True if the zone was stored and synced, False on unexpected errors.

        Raises:
            DataStoreError: If the zone's rules cannot be fetched.
        """
        try:
            logger.info(f"Setting zone {zone_id} (city {city_id}) for chat_id {chat_id}.")
            self.settings_service.set_zone(chat_id, city_id, zone_id)
            self.sync_service.sync_zone(zone_id)
            return True
        except DataStoreError as e:
            logger.warning(f"Could not fetch schedules for zone {zone_id}: {e}")
            raise
        except Exception as e:
            logger.exception(
                f"An unexpected error occurred while setting zone {zone_id} for chat_id {chat_id}: {e}"
            )
            return False

    def get_settings(self, chat_id: int) -> dict:
        """Retrieves the settings of a chat."""
        return self.settings_service.get_settings(chat_id)

    def set_language(self, chat_id: int, language: str) -> None:
        """Stores the language of a chat. Raises ValueError when unsupported."""
        self.settings_service.set_language(chat_id, language)

    def set_notifications_enabled(self, chat_id: int, enabled: bool) -> None:
        """Turns reminders on or off. Raises ValueError when no zone is set."""
        self.settings_service.set_notifications_enabled(chat_id, enabled)
        logger.info(
            f"Notifications {'enabled' if enabled else 'disabled'} for chat_id {chat_id}."
        )

    def get_dashboard_data(self) -> dict:
        """Retrieves all necessary data for the dashboard."""
        try:
            with self.persistence_service as p:
                kpis = p.get_kpis()
                logs = p.get_all_logs()
                start_time = p.get_system_info("bot_start_time")
            if start_time:
                uptime = datetime.now() - datetime.fromisoformat(start_time)
                kpis["bot_uptime_hours"] = round(uptime.total_seconds() / 3600, 2)
            return {"kpis": kpis, "logs": logs}
        except Exception as e:
            logger.exception("Failed to retrieve dashboard data.")
            return {"kpis": {}, "logs": [], "error": str(e)}

    def record_start_time(self) -> None:
        """Records the bot start time in the system_info table."""
        with self.persistence_service as p:
            p.record_system_info("bot_start_time", datetime.now().isoformat())

    # --- Notification Cycle Methods ---

    def get_due_notifications(self) -> List[dict]:
        """Gets all notifications that are due to be sent."""
        try:
            return self.notification_service.get_due_notifications()
        except Exception:
            logger.exception("Failed to get due notifications.")
            return []

    def log_pending_notification(self, chat_id: int, collection_date: date) -> Optional[int]:
        """Logs that a notification is about to be sent."""
        try:
            return self.notification_service.log_pending_notification(
                chat_id, collection_date
            )
        except Exception:
            logger.exception(f"Failed to log pending notification for chat_id {chat_id}.")
            return None

    def update_notification_log(
        self, log_id: int, status: str, error_message: Optional[str] = None
    ) -> None:
        """Updates the status of a sent notification."""
        try:
            self.notification_service.update_notification_log(
                log_id, status, error_message
            )
        except Exception:
            logger.exception(f"Failed to update notification log for log_id {log_id}.")

    def update_last_notified_date(self, chat_id: int, collection_date: date) -> None:
        """Updates the last notified date for a chat."""
        try:
            self.settings_service.update_last_notified(
                chat_id, collection_date.isoformat()
            )
        except Exception:
            logger.exception(f"Failed to update last notified date for chat_id {chat_id}.")
