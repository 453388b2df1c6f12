from datetime import date, datetime

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.provider import Provider
from security.rbac import require_provider
from services import availability as engine
from services.errors import NotFound
from utils.audit import log_event
from utils.validation import read_bool

availability_bp = Blueprint("availability", __name__, url_prefix="/availability")


def _parse_date(value: str) -> date:
    # Expect "YYYY-MM-DD"
    return date.fromisoformat((value or "").strip())


def _validate_slots(items):
    """Returns an error string or None. Range checks only; overlaps are allowed."""
    if not isinstance(items, list):
        return "availability array is required"
    for slot in items:
        if not isinstance(slot, dict):
            return "Each slot must be an object"
        if slot.get("day_of_week") is None or slot.get("start_time") is None or slot.get("end_time") is None:
            return "Each slot must have day_of_week, start_time, and end_time"
        try:
            dow = int(slot["day_of_week"])
        except (TypeError, ValueError):
            return "day_of_week must be between 0 (Sunday) and 6 (Saturday)"
        if dow < 0 or dow > 6:
            return "day_of_week must be between 0 (Sunday) and 6 (Saturday)"
        try:
            start = engine.parse_time_of_day(slot["start_time"])
            end = engine.parse_time_of_day(slot["end_time"])
        except ValueError:
            return "start_time and end_time must look like HH:MM"
        if start >= end:
            return "start_time must be before end_time"
        _, error = read_bool(slot, "is_available", default=True)
        if error:
            return error
    return None


@availability_bp.post("")
@require_provider
def set_availability():
    data = request.get_json(silent=True) or {}
    items = data.get("availability")
    error = _validate_slots(items)
    if error:
        return jsonify(error=error), 400

    rows = engine.set_weekly_availability(g.provider.id, items)

    log_event("AVAILABILITY_SET", user_id=g.user.id, entity="provider", entity_id=g.provider.id,
              metadata={"slots": len(rows)})
    return jsonify(
        message="Availability schedule updated successfully",
        availability=[engine.slot_to_dict(s) for s in rows],
    ), 200


@availability_bp.get("")
@require_provider
def get_availability():
    rows = engine.get_weekly_availability(g.provider.id)
    return jsonify(availability=[engine.slot_to_dict(s) for s in rows]), 200


@availability_bp.post("/block")
@require_provider
def block_date():
    data = request.get_json(silent=True) or {}
    if not data.get("blocked_date"):
        return jsonify(error="blocked_date is required"), 400
    try:
        day = _parse_date(data["blocked_date"])
    except (TypeError, ValueError):
        return jsonify(error="Invalid blocked_date. Use YYYY-MM-DD"), 400

    reason = (data.get("reason") or "").strip()[:255] or None
    try:
        row = engine.block_date(g.provider.id, day, reason)
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Date is already blocked"), 409

    log_event("DATE_BLOCK", user_id=g.user.id, entity="blocked_date", entity_id=row.id,
              metadata={"blocked_date": day.isoformat()})
    return jsonify(message="Date blocked successfully", blocked_date=engine.blocked_date_to_dict(row)), 201


@availability_bp.get("/blocked")
@require_provider
def get_blocked_dates():
    start_str = request.args.get("start_date")
    end_str = request.args.get("end_date")
    if not start_str or not end_str:
        return jsonify(error="start_date and end_date query parameters are required"), 400
    try:
        start, end = _parse_date(start_str), _parse_date(end_str)
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    rows = engine.list_blocked_dates(g.provider.id, start, end)
    return jsonify(blocked_dates=[engine.blocked_date_to_dict(r) for r in rows]), 200


@availability_bp.delete("/blocked/<int:block_id>")
@require_provider
def unblock_date(block_id: int):
    try:
        engine.unblock_date(g.provider.id, block_id)
    except NotFound as exc:
        return jsonify(error=exc.message), 404

    log_event("DATE_UNBLOCK", user_id=g.user.id, entity="blocked_date", entity_id=block_id)
    return jsonify(message="Date unblocked successfully"), 200


@availability_bp.get("/<int:provider_id>/slots")
def get_available_time_slots(provider_id: int):
    date_str = request.args.get("date")
    if not date_str:
        return jsonify(error="date query parameter is required"), 400
    try:
        day = _parse_date(date_str)
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    if db.session.get(Provider, provider_id) is None:
        return jsonify(error="Provider not found"), 404

    slots = engine.list_available_slots(
        provider_id,
        day,
        honor_blocked_dates=current_app.config.get("SLOTS_HONOR_BLOCKED_DATES", False),
    )
    return jsonify(provider_id=provider_id, date=day.isoformat(), available_slots=slots), 200


@availability_bp.get("/<int:provider_id>/check")
def check_slot(provider_id: int):
    at = request.args.get("at")
    if not at:
        return jsonify(error="at query parameter is required"), 400
    try:
        instant = datetime.fromisoformat(at.strip())
    except ValueError:
        return jsonify(error="Invalid datetime format. Use ISO e.g. 2026-01-20T18:00:00"), 400

    if db.session.get(Provider, provider_id) is None:
        return jsonify(error="Provider not found"), 404

    return jsonify(engine.is_slot_available(provider_id, instant).to_dict()), 200
