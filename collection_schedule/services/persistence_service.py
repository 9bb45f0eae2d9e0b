"""
This module defines the PersistenceService for database interactions.
"""

import sqlite3
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from ..config import COLLECTION_DB_PATH, DEFAULT_LANGUAGE
from ..models import City, CollectionSchedule, GarbageType, Zone

ZONE_SYNCED_PREFIX = "zone_synced_at:"


class PersistenceService:
    """Handles all database interactions for the application."""

    def __init__(self, db_path: str = COLLECTION_DB_PATH):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._cursor: Optional[sqlite3.Cursor] = None

    def __enter__(self) -> "PersistenceService":
        """Establishes the database connection."""
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._cursor = self._conn.cursor()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Commits changes (or rolls back on error) and closes the connection."""
        if self._conn:
            if exc_type is None:
                self._conn.commit()
            else:
                self._conn.rollback()
            self._conn.close()
        self._conn = None
        self._cursor = None

    def _get_cursor(self) -> sqlite3.Cursor:
        """Returns the cursor, ensuring the connection is open."""
        if self._cursor is None:
            raise RuntimeError("Database connection is not open. Use 'with' statement.")
        return self._cursor

    def init_db(self) -> None:
        """Initialize SQLite schema if not exists."""
        cur = self._get_cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS cities (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                name_pt TEXT,
                name_en TEXT,
                name_es TEXT,
                country_code TEXT
            )
        """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS zones (
                id TEXT PRIMARY KEY,
                city_id TEXT NOT NULL,
                name TEXT NOT NULL,
                name_pt TEXT,
                name_en TEXT,
                name_es TEXT,
                circuit_code TEXT
            )
        """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS garbage_types (
                id TEXT PRIMARY KEY,
                code TEXT NOT NULL,
                name_pt TEXT,
                name_en TEXT,
                name_es TEXT,
                color_hex TEXT,
                icon TEXT
            )
        """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS collection_schedules (
                id TEXT PRIMARY KEY,
                zone_id TEXT NOT NULL,
                garbage_type_id TEXT NOT NULL,
                day_of_week INTEGER NOT NULL,
                week_interval INTEGER NOT NULL DEFAULT 1,
                start_date TEXT NOT NULL,
                end_date TEXT,
                is_active BOOLEAN DEFAULT 1
            )
        """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS chat_settings (
                chat_id INTEGER PRIMARY KEY,
                city_id TEXT,
                zone_id TEXT,
                language TEXT NOT NULL DEFAULT 'pt',
                notifications_enabled BOOLEAN DEFAULT 0,
                last_notified DATE,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                level TEXT NOT NULL,
                message TEXT NOT NULL,
                logger_name TEXT
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS system_info (
                key TEXT PRIMARY KEY,
                value TEXT
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS notification_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                chat_id INTEGER,
                collection_date DATE,
                timestamp_scheduled DATETIME DEFAULT CURRENT_TIMESTAMP,
                timestamp_sent DATETIME,
                status TEXT NOT NULL,
                error_message TEXT,
                FOREIGN KEY(chat_id) REFERENCES chat_settings(chat_id)
            )
            """
        )

    # --- Catalog snapshot ---

    def replace_catalog(
        self, cities: Sequence[City], garbage_types: Sequence[GarbageType]
    ) -> None:
        """Replaces the cached cities, zones and garbage types."""
        cur = self._get_cursor()
        cur.execute("DELETE FROM zones")
        cur.execute("DELETE FROM cities")
        cur.execute("DELETE FROM garbage_types")
        for city in cities:
            cur.execute(
                "INSERT INTO cities (id, name, name_pt, name_en, name_es, country_code) VALUES (?, ?, ?, ?, ?, ?)",
                (city.id, city.name, city.name_pt, city.name_en, city.name_es, city.country_code),
            )
            for zone in city.zones:
                cur.execute(
                    "INSERT INTO zones (id, city_id, name, name_pt, name_en, name_es, circuit_code) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        zone.id,
                        zone.city_id,
                        zone.name,
                        zone.name_pt,
                        zone.name_en,
                        zone.name_es,
                        zone.circuit_code,
                    ),
                )
        cur.executemany(
            "INSERT INTO garbage_types (id, code, name_pt, name_en, name_es, color_hex, icon) VALUES (?, ?, ?, ?, ?, ?, ?)",
            [
                (gt.id, gt.code, gt.name_pt, gt.name_en, gt.name_es, gt.color_hex, gt.icon)
                for gt in garbage_types
            ],
        )

    def replace_zone_schedules(
        self, zone_id: str, schedules: Sequence[CollectionSchedule]
    ) -> None:
        """Replaces the cached rules of one zone."""
        cur = self._get_cursor()
        cur.execute("DELETE FROM collection_schedules WHERE zone_id = ?", (zone_id,))
        cur.executemany(
            "INSERT OR REPLACE INTO collection_schedules (id, zone_id, garbage_type_id, day_of_week, week_interval, start_date, end_date, is_active) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    s.id,
                    s.zone_id,
                    s.garbage_type_id,
                    s.day_of_week,
                    s.week_interval,
                    s.start_date,
                    s.end_date,
                    int(s.is_active),
                )
                for s in schedules
            ],
        )

    def mark_zone_synced(self, zone_id: str, synced_at: str) -> None:
        """Records when the rules of a zone were last fetched, even if none were found."""
        self.record_system_info(f"{ZONE_SYNCED_PREFIX}{zone_id}", synced_at)

    def get_zone_synced_at(self, zone_id: str) -> Optional[str]:
        """Returns when the rules of a zone were last fetched, or None if never."""
        return self.get_system_info(f"{ZONE_SYNCED_PREFIX}{zone_id}")

    def get_cities(self) -> List[City]:
        """Retrieves all cached cities with their zones, ordered by name."""
        cur = self._get_cursor()
        cur.execute("SELECT * FROM zones ORDER BY name")
        zones_by_city: Dict[str, List[Zone]] = {}
        for row in cur.fetchall():
            zone = Zone.from_row(row)
            zones_by_city.setdefault(zone.city_id, []).append(zone)

        cur.execute("SELECT * FROM cities ORDER BY name")
        return [
            replace(City.from_row(row), zones=zones_by_city.get(row["id"], []))
            for row in cur.fetchall()
        ]

    def get_city_by_id(self, city_id: str) -> Optional[City]:
        """Retrieves one cached city, or None."""
        for city in self.get_cities():
            if city.id == city_id:
                return city
        return None

    def get_zone_by_id(self, zone_id: str) -> Optional[Zone]:
        """Retrieves one cached zone, or None."""
        cur = self._get_cursor()
        cur.execute("SELECT * FROM zones WHERE id = ?", (zone_id,))
        row = cur.fetchone()
        return Zone.from_row(row) if row else None

    def get_garbage_types(self) -> List[GarbageType]:
        """Retrieves the cached garbage type catalog ordered by code."""
        cur = self._get_cursor()
        cur.execute("SELECT * FROM garbage_types ORDER BY code")
        return [GarbageType.from_row(row) for row in cur.fetchall()]

    def get_schedules_for_zone(self, zone_id: str) -> List[CollectionSchedule]:
        """Retrieves the cached active rules of one zone."""
        cur = self._get_cursor()
        cur.execute(
            "SELECT * FROM collection_schedules WHERE zone_id = ? AND is_active = 1 ORDER BY rowid",
            (zone_id,),
        )
        return [CollectionSchedule.from_row(row) for row in cur.fetchall()]

    # --- Chat settings ---

    def get_chat_settings(self, chat_id: int) -> Optional[dict]:
        """Retrieves the stored settings of a chat, or None."""
        cur = self._get_cursor()
        cur.execute("SELECT * FROM chat_settings WHERE chat_id = ?", (chat_id,))
        row = cur.fetchone()
        return dict(row) if row else None

    def ensure_chat(self, chat_id: int) -> None:
        """Creates a settings row with defaults if the chat has none."""
        cur = self._get_cursor()
        cur.execute(
            "INSERT OR IGNORE INTO chat_settings (chat_id, language) VALUES (?, ?)",
            (chat_id, DEFAULT_LANGUAGE),
        )

    def save_zone(self, chat_id: int, city_id: str, zone_id: str) -> None:
        """Stores the selected city and zone of a chat."""
        self.ensure_chat(chat_id)
        cur = self._get_cursor()
        cur.execute(
            "UPDATE chat_settings SET city_id = ?, zone_id = ?, last_notified = NULL WHERE chat_id = ?",
            (city_id, zone_id, chat_id),
        )

    def save_language(self, chat_id: int, language: str) -> None:
        """Stores the language of a chat."""
        self.ensure_chat(chat_id)
        cur = self._get_cursor()
        cur.execute(
            "UPDATE chat_settings SET language = ? WHERE chat_id = ?",
            (language, chat_id),
        )

    def save_notifications_enabled(self, chat_id: int, enabled: bool) -> None:
        """Stores the reminder toggle of a chat."""
        self.ensure_chat(chat_id)
        cur = self._get_cursor()
        cur.execute(
            "UPDATE chat_settings SET notifications_enabled = ? WHERE chat_id = ?",
            (int(enabled), chat_id),
        )

    def update_last_notified(self, chat_id: int, collection_date: str) -> None:
        """Updates the last collection date a chat was reminded about."""
        cur = self._get_cursor()
        cur.execute(
            "UPDATE chat_settings SET last_notified = ? WHERE chat_id = ?",
            (collection_date, chat_id),
        )

    def get_chats_with_notifications(self) -> List[dict]:
        """Retrieves every chat with reminders on and a zone selected."""
        cur = self._get_cursor()
        cur.execute(
            "SELECT chat_id, city_id, zone_id, language, last_notified FROM chat_settings WHERE notifications_enabled = 1 AND zone_id IS NOT NULL"
        )
        return [dict(row) for row in cur.fetchall()]

    def get_configured_zone_ids(self) -> List[str]:
        """Retrieves the distinct zones selected by at least one chat."""
        cur = self._get_cursor()
        cur.execute(
            "SELECT DISTINCT zone_id FROM chat_settings WHERE zone_id IS NOT NULL ORDER BY zone_id"
        )
        return [row[0] for row in cur.fetchall()]

    # --- Notification logs, logs and system info ---

    def create_notification_log(
        self, chat_id: int, collection_date: str, status: str
    ) -> int:
        """Creates a new notification log entry and returns its ID."""
        cur = self._get_cursor()
        cur.execute(
            "INSERT INTO notification_logs (chat_id, collection_date, status) VALUES (?, ?, ?)",
            (chat_id, collection_date, status),
        )
        return cur.lastrowid

    def update_notification_log_status(
        self, log_id: int, status: str, error_message: Optional[str] = None
    ) -> None:
        """Updates the status of a notification log."""
        cur = self._get_cursor()
        cur.execute(
            "UPDATE notification_logs SET status = ?, error_message = ?, timestamp_sent = CURRENT_TIMESTAMP WHERE id = ?",
            (status, error_message, log_id),
        )

    def get_all_logs(self) -> List[dict]:
        """Retrieves all logs from the database, ordered by timestamp descending."""
        cur = self._get_cursor()
        cur.execute(
            "SELECT timestamp, level, message, logger_name FROM logs ORDER BY timestamp DESC LIMIT 100"
        )  # Limit to 100 to keep the dashboard payload small
        return [dict(row) for row in cur.fetchall()]

    def record_system_info(self, key: str, value: str) -> None:
        """Stores a key/value pair in the system_info table."""
        cur = self._get_cursor()
        cur.execute(
            "INSERT OR REPLACE INTO system_info (key, value) VALUES (?, ?)",
            (key, value),
        )

    def get_system_info(self, key: str) -> Optional[str]:
        """Reads a value from the system_info table."""
        cur = self._get_cursor()
        cur.execute("SELECT value FROM system_info WHERE key = ?", (key,))
        row = cur.fetchone()
        return row[0] if row else None

    def get_kpis(self) -> dict:
        """Computes the counters shown on the dashboard."""
        cur = self._get_cursor()
        kpis = {
            "configured_chats": cur.execute(
                "SELECT COUNT(*) FROM chat_settings WHERE zone_id IS NOT NULL"
            ).fetchone()[0],
            "chats_with_notifications": cur.execute(
                "SELECT COUNT(*) FROM chat_settings WHERE notifications_enabled = 1"
            ).fetchone()[0],
            "zones_in_use": cur.execute(
                "SELECT COUNT(DISTINCT zone_id) FROM chat_settings WHERE zone_id IS NOT NULL"
            ).fetchone()[0],
            "cached_schedules": cur.execute(
                "SELECT COUNT(*) FROM collection_schedules"
            ).fetchone()[0],
            "delivery_rate_percent": 0,
        }
        sent = cur.execute(
            "SELECT COUNT(*) FROM notification_logs WHERE status IN ('success', 'failure')"
        ).fetchone()[0]
        if sent > 0:
            successful = cur.execute(
                "SELECT COUNT(*) FROM notification_logs WHERE status = 'success'"
            ).fetchone()[0]
            kpis["delivery_rate_percent"] = round((successful / sent) * 100, 2)
        return kpis
