"""
This module contains configuration settings for the application.
"""
import os
import logging

# Remote catalog (PostgREST / Supabase REST endpoint)
BACKEND_URL = os.environ.get("BACKEND_URL", "http://localhost:54321")
BACKEND_API_KEY = os.environ.get("BACKEND_API_KEY")

# Catalog client retry settings
CATALOG_MAX_RETRIES = int(os.environ.get("CATALOG_MAX_RETRIES", 3))
CATALOG_RETRY_DELAY = int(os.environ.get("CATALOG_RETRY_DELAY", 10))

# Catalog sync interval in hours
CATALOG_SYNC_INTERVAL_HOURS = int(os.environ.get("CATALOG_SYNC_INTERVAL_HOURS", 24))

# Telegram Bot Token
TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN")

# Telegram bot rate limiting
TELEGRAM_RATE_LIMIT_OVERALL = int(os.environ.get("TELEGRAM_RATE_LIMIT_OVERALL", 30))
TELEGRAM_RATE_LIMIT_GROUP = float(os.environ.get("TELEGRAM_RATE_LIMIT_GROUP", 20 / 60))

# Reminders go out the evening before a collection
REMINDER_HOUR = int(os.environ.get("REMINDER_HOUR", 18))
REMINDER_WEEKS_AHEAD = int(os.environ.get("REMINDER_WEEKS_AHEAD", 4))

# Languages
DEFAULT_LANGUAGE = os.environ.get("DEFAULT_LANGUAGE", "pt")
SUPPORTED_LANGUAGES = ("pt", "en", "es")

# Country used for public holiday labels when a city has none
DEFAULT_COUNTRY_CODE = os.environ.get("DEFAULT_COUNTRY_CODE", "PT")

# Logging level
LOG_LEVEL = logging.INFO

# Database path
COLLECTION_DB_PATH = os.environ.get("COLLECTION_DB_PATH", "collection_schedule.db")
