"""
Unit tests for the NotificationService.
"""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from collection_schedule.models import CollectionSchedule, GarbageType
from collection_schedule.services.notification_service import (
    NotificationService, get_garbage_type_emoji)

PAPEL = GarbageType("t-papel", "papel", "Papel", "Paper", "Papel", "#0000FF")
VIDRO = GarbageType("t-vidro", "vidro", "Vidro", "Glass", "Vidrio", "#00FF00")

# Paper every Monday, glass every third Monday from Jan 1st
MONDAY_PAPER = CollectionSchedule("s1", "z1", "t-papel", 1, 1, "2024-01-01")
MONDAY_GLASS = CollectionSchedule("s2", "z1", "t-vidro", 1, 3, "2024-01-01")
BROKEN = CollectionSchedule("s3", "z2", "t-papel", 1, 1, "01/01/2024")

SAMPLE_CHATS = [
    {"chat_id": 101, "city_id": "c1", "zone_id": "z1", "language": "pt", "last_notified": None},
    {"chat_id": 102, "city_id": "c1", "zone_id": "z1", "language": "en", "last_notified": "2024-01-22"},
    {"chat_id": 103, "city_id": "c1", "zone_id": "z1", "language": "es", "last_notified": "2024-01-15"},
]


@pytest.fixture
def mock_persistence():
    persistence = MagicMock()
    db = persistence.__enter__.return_value
    db.get_chats_with_notifications.return_value = SAMPLE_CHATS
    db.get_garbage_types.return_value = [PAPEL, VIDRO]
    db.get_schedules_for_zone.side_effect = lambda zone_id: {
        "z1": [MONDAY_PAPER, MONDAY_GLASS],
        "z2": [BROKEN],
    }[zone_id]
    return persistence


def test_get_due_notifications(mock_persistence):
    """
    Tests the logic for identifying which notifications are due.
    """
    service = NotificationService(mock_persistence, reminder_hour=18)

    # Sunday evening, Monday 2024-01-22 has paper and glass
    tasks = service.get_due_notifications(datetime(2024, 1, 21, 19, 0))

    assert [t["chat_id"] for t in tasks] == [101, 103]
    assert all(t["collection_date"] == date(2024, 1, 22) for t in tasks)
    assert "Papel, Vidro" in tasks[0]["message"]
    assert "Amanhã" in tasks[0]["message"]
    assert "Mañana" in tasks[1]["message"]
    assert "Vidrio" in tasks[1]["message"]


def test_get_due_notifications_before_reminder_hour(mock_persistence):
    service = NotificationService(mock_persistence, reminder_hour=18)

    assert service.get_due_notifications(datetime(2024, 1, 7, 17, 59)) == []
    mock_persistence.__enter__.return_value.get_chats_with_notifications.assert_not_called()


def test_get_due_notifications_without_collection_tomorrow(mock_persistence):
    service = NotificationService(mock_persistence, reminder_hour=18)

    # Tuesday 2024-01-09 has no collection
    assert service.get_due_notifications(datetime(2024, 1, 8, 20, 0)) == []


def test_get_due_notifications_skips_invalid_zone_data(mock_persistence):
    db = mock_persistence.__enter__.return_value
    db.get_chats_with_notifications.return_value = [
        {"chat_id": 201, "city_id": "c1", "zone_id": "z2", "language": "pt", "last_notified": None},
        SAMPLE_CHATS[0],
    ]
    service = NotificationService(mock_persistence, reminder_hour=18)

    tasks = service.get_due_notifications(datetime(2024, 1, 7, 18, 0))

    assert [t["chat_id"] for t in tasks] == [101]


def test_plan_reminders_previous_evening():
    service = NotificationService(MagicMock(), reminder_hour=18)

    reminders = service.plan_reminders(
        datetime(2024, 1, 7, 17, 0), [MONDAY_PAPER], [PAPEL], weeks=1
    )

    assert len(reminders) == 1
    assert reminders[0].garbage_type == PAPEL
    assert reminders[0].collection_date == date(2024, 1, 8)
    assert reminders[0].notify_at == datetime(2024, 1, 7, 18, 0)


def test_plan_reminders_drops_past_reminders():
    service = NotificationService(MagicMock(), reminder_hour=18)

    reminders = service.plan_reminders(
        datetime(2024, 1, 7, 19, 0), [MONDAY_PAPER], [PAPEL], weeks=2
    )

    assert [r.collection_date for r in reminders] == [date(2024, 1, 15)]


def test_plan_reminders_one_per_garbage_type():
    service = NotificationService(MagicMock(), reminder_hour=18)

    reminders = service.plan_reminders(
        datetime(2024, 1, 1, 9, 0), [MONDAY_PAPER, MONDAY_GLASS], [PAPEL, VIDRO], weeks=4
    )

    by_date = {}
    for reminder in reminders:
        by_date.setdefault(reminder.collection_date, []).append(reminder.garbage_type.code)
    assert by_date == {
        date(2024, 1, 8): ["papel"],
        date(2024, 1, 15): ["papel"],
        date(2024, 1, 22): ["papel", "vidro"],
        date(2024, 1, 29): ["papel"],
    }


def test_build_message_deduplicates_names():
    service = NotificationService(MagicMock())

    message = service.build_message([PAPEL, PAPEL, VIDRO], "en")

    assert message == "📄 Garbage Day - Tomorrow's collection: Paper, Glass"


def test_build_message_unknown_language_falls_back_to_portuguese():
    service = NotificationService(MagicMock())

    assert "Amanhã" in service.build_message([VIDRO], "de")


def test_get_garbage_type_emoji():
    assert get_garbage_type_emoji("vidro") == "🍾"
    assert get_garbage_type_emoji("unknown") == "🗑️"


def test_log_pending_notification():
    mock_persistence = MagicMock()
    db = mock_persistence.__enter__.return_value
    db.create_notification_log.return_value = 7
    service = NotificationService(mock_persistence)

    log_id = service.log_pending_notification(101, date(2024, 1, 8))

    assert log_id == 7
    db.create_notification_log.assert_called_once_with(101, "2024-01-08", "pending")


def test_update_notification_log():
    mock_persistence = MagicMock()
    service = NotificationService(mock_persistence)

    service.update_notification_log(7, "failure", "Forbidden")

    mock_persistence.__enter__.return_value.update_notification_log_status.assert_called_once_with(
        7, "failure", "Forbidden"
    )
