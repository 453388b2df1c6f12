import logging
import re
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking, BOOKING_STATUSES
from models.service import Service
from models.user import User
from services import notifications
from services.availability import is_slot_available, normalize_instant, truncate_to_minute, REASON_ALREADY_BOOKED
from services.errors import BookingConflict, InvalidInput, InvalidTransition, NotFound, SlotUnavailable

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Provider-driven lifecycle; cancellation is allowed from any live state
ALLOWED_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": {"cancelled"},
    "cancelled": set(),
}


def is_valid_email(value: str) -> bool:
    return isinstance(value, str) and len(value) <= 255 and bool(EMAIL_RE.match(value))


def _notify(fn, *args):
    # Email problems never fail the booking operation itself
    try:
        fn(*args)
    except Exception:
        db.session.rollback()
        logger.exception("Failed to send %s", fn.__name__)


def create_booking(service_id: int, booking_date: datetime, notes: Optional[str] = None,
                   customer=None, guest: Optional[dict] = None) -> Booking:
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFound("Service not found")
    if not service.is_active:
        raise NotFound("Service is not available")

    if customer is None:
        guest = guest or {}
        name = (guest.get("customer_name") or "").strip()
        email = (guest.get("customer_email") or "").strip().lower()
        if not name or not email:
            raise InvalidInput("customer_name and customer_email are required")
        if not is_valid_email(email):
            raise InvalidInput("Invalid email format")
        guest = {
            "customer_name": name[:120],
            "customer_email": email,
            "customer_phone": (guest.get("customer_phone") or "").strip()[:30] or None,
        }

    booking_date = normalize_instant(booking_date)
    check = is_slot_available(service.provider_id, booking_date)
    if not check.available:
        raise SlotUnavailable(check.reason)

    booking = Booking(
        provider_id=service.provider_id,
        service_id=service.id,
        customer_id=customer.id if customer is not None else None,
        booking_date=booking_date,
        slot_key=truncate_to_minute(booking_date),
        status="pending",
        notes=notes or None,
        **(guest if customer is None else {}),
    )
    db.session.add(booking)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent request took the same minute between the check and the insert
        db.session.rollback()
        raise BookingConflict(REASON_ALREADY_BOOKED)

    logger.info("Booking %s created for provider %s at %s", booking.id, booking.provider_id, booking.booking_date.isoformat())
    _notify(notifications.send_booking_confirmation, booking)
    return booking


def get_booking(booking_id: int, user) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None or user is None:
        raise NotFound("Booking not found")

    if booking.customer_id is not None and booking.customer_id == user.id:
        return booking
    if user.provider is not None and booking.provider_id == user.provider.id:
        return booking
    raise NotFound("Booking not found")


def list_customer_bookings(customer_id: int) -> List[Booking]:
    return (
        Booking.query
        .filter_by(customer_id=customer_id)
        .order_by(Booking.booking_date.desc())
        .all()
    )


def list_bookings_by_email(email: str, provider_id: Optional[int] = None) -> List[Booking]:
    """Guest and account bookings whose contact email matches, newest first."""
    email = (email or "").strip().lower()
    if not email:
        raise InvalidInput("Email is required")

    q = (
        Booking.query
        .outerjoin(User, Booking.customer_id == User.id)
        .filter(db.or_(db.func.lower(Booking.customer_email) == email, db.func.lower(User.email) == email))
    )
    if provider_id is not None:
        q = q.filter(Booking.provider_id == provider_id)
    return q.order_by(Booking.booking_date.desc()).all()


def list_provider_bookings(provider_id: int, status: Optional[str] = None) -> List[Booking]:
    q = Booking.query.filter_by(provider_id=provider_id)
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Booking.booking_date.desc()).all()


def update_booking_status(booking_id: int, provider_id: int, status: str) -> Booking:
    if status not in BOOKING_STATUSES:
        raise InvalidInput("Invalid booking status")

    booking = Booking.query.filter_by(id=booking_id, provider_id=provider_id).first()
    if booking is None:
        raise NotFound("Booking not found or unauthorized")

    old_status = booking.status
    if old_status == status:
        return booking
    if status not in ALLOWED_TRANSITIONS[old_status]:
        raise InvalidTransition(f"Cannot change booking from {old_status} to {status}")

    booking.status = status
    if status == "cancelled":
        booking.cancelled_at = datetime.utcnow()
    db.session.commit()

    logger.info("Booking %s status %s -> %s", booking.id, old_status, status)
    _notify(notifications.send_booking_status_update, booking, old_status, status)
    return booking


def cancel_booking(booking_id: int, customer_id: int) -> Booking:
    booking = Booking.query.filter_by(id=booking_id, customer_id=customer_id).first()
    if booking is None:
        raise NotFound("Booking not found or unauthorized")
    if booking.status == "cancelled":
        return booking

    booking.status = "cancelled"
    booking.cancelled_at = datetime.utcnow()
    db.session.commit()

    logger.info("Booking %s cancelled by customer %s", booking.id, customer_id)
    return booking


def booking_to_dict(b: Booking) -> dict:
    return {
        "id": b.id,
        "provider_id": b.provider_id,
        "service_id": b.service_id,
        "service_title": b.service.title if b.service else None,
        "price": b.service.price if b.service else None,
        "duration_minutes": b.service.duration_minutes if b.service else None,
        "business_name": b.provider.business_name if b.provider else None,
        "customer_id": b.customer_id,
        "customer_name": b.contact_name,
        "customer_email": b.contact_email,
        "customer_phone": b.customer_phone,
        "booking_date": b.booking_date.isoformat(),
        "status": b.status,
        "notes": b.notes,
        "created_at": b.created_at.isoformat() if b.created_at else None,
        "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
    }
