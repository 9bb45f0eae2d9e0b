"""
This module sets up a database logging handler for the application.
"""
import logging
import sqlite3
import sys
from logging import Handler, LogRecord

from collection_schedule.config import COLLECTION_DB_PATH, LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SQLiteHandler(Handler):
    """
    A logging handler that writes records to an SQLite database.
    """

    def __init__(self, db_path: str = COLLECTION_DB_PATH):
        super().__init__()
        self.db_path = db_path

    def emit(self, record: LogRecord) -> None:
        """
        Writes the log record to the database.
        """
        try:
            conn = sqlite3.connect(self.db_path)
            try:
                conn.execute(
                    "INSERT INTO logs (level, message, logger_name) VALUES (?, ?, ?)",
                    (record.levelname, self.format(record), record.name),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            # The database is the log sink, so report on stderr instead
            print(f"CRITICAL: Could not write log to database: {e}", file=sys.stderr)


def setup_database_logging(db_path: str = COLLECTION_DB_PATH, level: int = LOG_LEVEL) -> None:
    """
    Configures the root logger to use the SQLiteHandler and the console.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove any existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    db_handler = SQLiteHandler(db_path)
    db_handler.setLevel(level)
    db_handler.setFormatter(formatter)
    logger.addHandler(db_handler)

    # Add a console handler as well for immediate feedback
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logging.info("Logging configured to use database and console.")
