"""
Tests for the application wiring and the database logging handler.
"""
import logging
import sqlite3

import pytest

from collection_schedule.facade import CollectionCalendarFacade
from dia_do_lixo.app_factory import create_facade, initialize_app
from dia_do_lixo.logging_config import SQLiteHandler


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_initialize_app_writes_logs_to_database(tmp_path, restore_root_logger):
    db_path = str(tmp_path / "app.db")

    initialize_app(db_path)
    logging.getLogger("dia_do_lixo.test").warning("Zone z1 has no schedules")

    conn = sqlite3.connect(db_path)
    rows = conn.execute("SELECT level, message, logger_name FROM logs").fetchall()
    conn.close()
    assert ("WARNING", "dia_do_lixo.test") in [(r[0], r[2]) for r in rows]
    assert any("Zone z1 has no schedules" in r[1] for r in rows)


def test_sqlite_handler_reports_missing_table(tmp_path, capsys):
    handler = SQLiteHandler(str(tmp_path / "empty.db"))
    record = logging.LogRecord("test", logging.ERROR, __file__, 1, "boom", None, None)

    handler.emit(record)

    assert "Could not write log to database" in capsys.readouterr().err


def test_create_facade_wires_services(tmp_path):
    facade = create_facade(str(tmp_path / "app.db"))

    assert isinstance(facade, CollectionCalendarFacade)
    assert facade.sync_service.persistence_service is facade.persistence_service
    assert facade.settings_service.persistence is facade.persistence_service
    assert facade.notification_service.persistence is facade.persistence_service
