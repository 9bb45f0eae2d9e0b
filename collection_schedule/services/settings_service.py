"""
This module defines the SettingsService for managing per-chat user settings.
"""
from ..config import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES
from .persistence_service import PersistenceService

DEFAULT_SETTINGS = {
    "city_id": None,
    "zone_id": None,
    "language": DEFAULT_LANGUAGE,
    "notifications_enabled": False,
    "last_notified": None,
}


class SettingsService:
    """Handles business logic for the selected zone, language and reminders."""

    def __init__(self, persistence_service: PersistenceService):
        self.persistence = persistence_service

    def get_settings(self, chat_id: int) -> dict:
        """Returns the settings of a chat, falling back to defaults."""
        with self.persistence as p:
            stored = p.get_chat_settings(chat_id)
        settings = dict(DEFAULT_SETTINGS)
        if stored:
            settings.update(
                {key: stored[key] for key in DEFAULT_SETTINGS if key in stored}
            )
            settings["notifications_enabled"] = bool(settings["notifications_enabled"])
        return settings

    def set_zone(self, chat_id: int, city_id: str, zone_id: str) -> None:
        """Stores the selected city and zone."""
        with self.persistence as p:
            p.save_zone(chat_id, city_id, zone_id)

    def set_language(self, chat_id: int, language: str) -> None:
        """Stores the chat language. Raises ValueError for unsupported languages."""
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        with self.persistence as p:
            p.save_language(chat_id, language)

    def set_notifications_enabled(self, chat_id: int, enabled: bool) -> None:
        """
        Turns reminders on or off.

        Raises:
            ValueError: If reminders are enabled before a zone was selected.
        """
        with self.persistence as p:
            if enabled:
                stored = p.get_chat_settings(chat_id)
                if not stored or not stored["zone_id"]:
                    raise ValueError("Select a zone before enabling notifications.")
            p.save_notifications_enabled(chat_id, enabled)

    def update_last_notified(self, chat_id: int, collection_date: str) -> None:
        """Updates the last collection date a chat was reminded about."""
        with self.persistence as p:
            p.update_last_notified(chat_id, collection_date)
