"""
This module contains the Flask application for the dashboard and the calendar API.
"""

import logging
from datetime import date
from typing import Optional

from flask import Flask, Response, abort, current_app, jsonify, request

from collection_schedule.config import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES
from collection_schedule.dates import MONTH_MODE, RANGE_MODES, WEEK_MODE
from collection_schedule.exceptions import (DataStoreError,
                                            InvalidScheduleDateError)
from collection_schedule.models import CollectionDay, GarbageType

logger = logging.getLogger(__name__)

app = Flask(__name__)


def get_facade():
    """Returns the facade configured for the application."""
    facade = current_app.config.get("FACADE")
    if facade is None:
        abort(500, description="Application facade is not configured.")
    return facade


def parse_date_arg(name: str = "date") -> date:
    """Reads an optional YYYY-MM-DD query argument, defaulting to today."""
    value: Optional[str] = request.args.get(name)
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        abort(400, description=f"Invalid {name}: {value}")


def get_language() -> str:
    language = request.args.get("lang", DEFAULT_LANGUAGE)
    return language if language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def serialize_garbage_type(garbage_type: GarbageType, language: str) -> dict:
    return {
        "id": garbage_type.id,
        "code": garbage_type.code,
        "name": garbage_type.display_name(language),
        "color_hex": garbage_type.color_hex,
        "icon": garbage_type.icon,
    }


def serialize_day(day: CollectionDay, language: str) -> dict:
    return {
        "date": day.date.isoformat(),
        "holiday": day.holiday,
        "garbage_types": [
            serialize_garbage_type(gt, language) for gt in day.garbage_types
        ],
    }


@app.errorhandler(DataStoreError)
def handle_data_store_error(e):
    logger.error(f"Backend unavailable: {e}")
    return jsonify({"error": "Collection data is currently unavailable."}), 503


@app.errorhandler(InvalidScheduleDateError)
def handle_invalid_schedule(e):
    return jsonify({"error": str(e)}), 500


@app.route("/")
def index():
    """Returns the dashboard KPIs and the most recent logs."""
    return jsonify(get_facade().get_dashboard_data())


def _range_response(zone_id: str, mode: str):
    language = get_language()
    days = get_facade().get_range(zone_id, parse_date_arg(), mode)
    return jsonify(
        {
            "zone_id": zone_id,
            "mode": mode,
            "days": [serialize_day(day, language) for day in days],
        }
    )


@app.route("/api/zones/<zone_id>/week")
def zone_week(zone_id):
    """Returns the Monday-to-Sunday week containing ?date= (default today)."""
    return _range_response(zone_id, WEEK_MODE)


@app.route("/api/zones/<zone_id>/month")
def zone_month(zone_id):
    """Returns the calendar month containing ?date= (default today)."""
    return _range_response(zone_id, MONTH_MODE)


@app.route("/api/zones/<zone_id>/next")
def zone_next(zone_id):
    """Returns the next collection date of every garbage type in the zone."""
    language = get_language()
    entries = get_facade().get_next_collections(zone_id, parse_date_arg())
    return jsonify(
        [
            {
                "garbage_type": serialize_garbage_type(entry.garbage_type, language),
                "next_date": entry.next_date.isoformat(),
            }
            for entry in entries
        ]
    )


@app.route("/api/zones/<zone_id>/reminders")
def zone_reminders(zone_id):
    """Returns the reminders planned for the coming weeks."""
    language = get_language()
    reminders = get_facade().get_upcoming_reminders(zone_id)
    return jsonify(
        [
            {
                "garbage_type": serialize_garbage_type(r.garbage_type, language),
                "collection_date": r.collection_date.isoformat(),
                "notify_at": r.notify_at.isoformat(),
            }
            for r in reminders
        ]
    )


@app.route("/api/zones/<zone_id>/calendar.ics")
def zone_calendar(zone_id):
    """Returns the week or month (?mode=, default month) as an iCalendar file."""
    mode = request.args.get("mode", MONTH_MODE)
    if mode not in RANGE_MODES:
        abort(400, description=f"Invalid mode: {mode}")
    body = get_facade().export_calendar(
        zone_id, parse_date_arg(), mode, get_language()
    )
    return Response(
        body,
        mimetype="text/calendar",
        headers={"Content-Disposition": f"attachment; filename=dia-do-lixo-{zone_id}.ics"},
    )


def run_dashboard(facade, host: str = "127.0.0.1", port: int = 5000) -> None:
    """Runs the dashboard with the given facade."""
    app.config["FACADE"] = facade
    app.run(host=host, port=port)
