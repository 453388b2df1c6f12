from datetime import datetime

from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles, require_provider
from services import bookings as booking_service
from services.availability import normalize_instant
from services.errors import ServiceError, NotFound
from services.notifications import list_notifications, notification_to_dict
from utils.audit import log_event
from utils.auth_context import login_required

booking_bp = Blueprint("bookings", __name__, url_prefix="/bookings")


def _parse_iso(dt_str: str):
    # Expect ISO format like "2026-01-20T18:00:00"
    return datetime.fromisoformat(dt_str.strip())


def _read_booking_request(data: dict):
    """Returns (service_id, booking_date, error)."""
    service_id = data.get("service_id")
    booking_date = data.get("booking_date")
    if not service_id or not booking_date:
        return None, None, "service_id and booking_date are required"
    try:
        service_id = int(service_id)
    except (TypeError, ValueError):
        return None, None, "service_id must be a number"
    try:
        when = normalize_instant(_parse_iso(str(booking_date)))
    except ValueError:
        return None, None, "Invalid booking_date format"
    if when < datetime.now():
        return None, None, "Booking date must be in the future"
    return service_id, when, None


@booking_bp.post("")
@require_roles("CUSTOMER")
def create_booking():
    data = request.get_json(silent=True) or {}
    service_id, when, error = _read_booking_request(data)
    if error:
        return jsonify(error=error), 400

    try:
        booking = booking_service.create_booking(
            service_id, when, notes=(data.get("notes") or "").strip() or None, customer=g.user,
        )
    except ServiceError as exc:
        log_event("BOOKING_FAIL", user_id=g.user.id, entity="service", entity_id=service_id,
                  metadata={"reason": exc.message})
        return jsonify(error=exc.message), exc.status_code

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"service_id": service_id})
    return jsonify(message="Booking created successfully", booking=booking_service.booking_to_dict(booking)), 201


@booking_bp.post("/guest")
def create_guest_booking():
    data = request.get_json(silent=True) or {}
    service_id, when, error = _read_booking_request(data)
    if error:
        return jsonify(error=error), 400

    try:
        booking = booking_service.create_booking(
            service_id,
            when,
            notes=(data.get("notes") or "").strip() or None,
            guest={
                "customer_name": data.get("customer_name"),
                "customer_email": data.get("customer_email"),
                "customer_phone": data.get("customer_phone"),
            },
        )
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code

    log_event("GUEST_BOOKING_CREATE", entity="booking", entity_id=booking.id, metadata={"service_id": service_id})
    return jsonify(
        message="Booking created successfully. A confirmation email will be sent to your email address.",
        booking=booking_service.booking_to_dict(booking),
    ), 201


@booking_bp.get("/my-bookings")
@require_roles("CUSTOMER")
def my_bookings():
    rows = booking_service.list_customer_bookings(g.user.id)
    return jsonify(bookings=[booking_service.booking_to_dict(b) for b in rows]), 200


@booking_bp.get("/provider/my-bookings")
@require_provider
def provider_bookings():
    status = request.args.get("status")
    rows = booking_service.list_provider_bookings(g.provider.id, status=status)
    return jsonify(bookings=[booking_service.booking_to_dict(b) for b in rows]), 200


@booking_bp.get("/by-email")
@login_required
def bookings_by_email():
    email = (request.args.get("email") or "").strip().lower()
    if not email:
        return jsonify(error="Email is required"), 400

    # Providers search within their business; customers only their own address
    provider_id = None
    if g.user.provider is not None:
        provider_id = g.user.provider.id
    elif email != g.user.email.lower():
        return jsonify(error="Forbidden"), 403

    rows = booking_service.list_bookings_by_email(email, provider_id=provider_id)
    return jsonify(bookings=[booking_service.booking_to_dict(b) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    try:
        booking = booking_service.get_booking(booking_id, g.user)
    except NotFound as exc:
        return jsonify(error=exc.message), 404
    return jsonify(booking=booking_service.booking_to_dict(booking)), 200


@booking_bp.put("/<int:booking_id>/cancel")
@require_roles("CUSTOMER")
def cancel_booking(booking_id: int):
    try:
        booking = booking_service.cancel_booking(booking_id, g.user.id)
    except NotFound as exc:
        return jsonify(error=exc.message), 404

    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(message="Booking cancelled successfully", booking=booking_service.booking_to_dict(booking)), 200


@booking_bp.put("/<int:booking_id>/status")
@require_provider
def update_booking_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()
    if not status:
        return jsonify(error="status is required"), 400

    try:
        booking = booking_service.update_booking_status(booking_id, g.provider.id, status)
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code

    log_event("BOOKING_STATUS_UPDATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"status": status})
    return jsonify(message="Booking status updated successfully", booking=booking_service.booking_to_dict(booking)), 200


@booking_bp.get("/<int:booking_id>/notifications")
@require_provider
def booking_notifications(booking_id: int):
    try:
        booking = booking_service.get_booking(booking_id, g.user)
    except NotFound as exc:
        return jsonify(error=exc.message), 404
    if booking.provider_id != g.provider.id:
        return jsonify(error="Booking not found"), 404

    rows = list_notifications(booking.id)
    return jsonify(notifications=[notification_to_dict(n) for n in rows]), 200
