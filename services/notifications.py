"""Booking lifecycle emails. Every message is recorded in email_notifications."""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from models import db
from models.booking import Booking
from models.email_notification import EmailNotification
from utils.emailer import send_email

logger = logging.getLogger(__name__)


def _when(booking: Booking) -> str:
    return booking.booking_date.strftime("%A, %B %d, %Y at %H:%M")


def _service_title(booking: Booking) -> str:
    return booking.service.title if booking.service else "Service"


def send_notification(booking: Booking, recipient_email: str, recipient_type: str,
                      notification_type: str, subject: str, body: str) -> EmailNotification:
    delivery = send_email(recipient_email, subject, body, provider=booking.provider)

    row = EmailNotification(
        booking_id=booking.id,
        recipient_email=recipient_email,
        recipient_type=recipient_type,
        notification_type=notification_type,
        subject=subject,
        body=body,
        status=delivery.status,
        channel=delivery.channel,
        error=delivery.error,
    )
    db.session.add(row)
    db.session.commit()

    logger.info("Notification %s for booking %s to %s: %s", notification_type, booking.id, recipient_type, delivery.status)
    return row


def send_booking_confirmation(booking: Booking) -> List[EmailNotification]:
    title = _service_title(booking)
    sent = []

    if booking.contact_email:
        sent.append(send_notification(
            booking,
            booking.contact_email,
            "customer",
            "booking_confirmation",
            f"Booking Confirmation - {title}",
            (
                "Your booking has been received!\n\n"
                f"Service: {title}\n"
                f"Business: {booking.provider.business_name}\n"
                f"Date: {_when(booking)}\n"
                f"Status: {booking.status}\n\n"
                "Thank you for your booking!"
            ),
        ))

    provider_email = booking.provider.user.email if booking.provider.user else None
    if provider_email:
        sent.append(send_notification(
            booking,
            provider_email,
            "provider",
            "new_booking",
            f"New Booking - {title}",
            (
                "You have a new booking!\n\n"
                f"Service: {title}\n"
                f"Customer: {booking.contact_name or 'Customer'}\n"
                f"Email: {booking.contact_email or '-'}\n"
                f"Phone: {booking.customer_phone or '-'}\n"
                f"Date: {_when(booking)}\n"
                f"Notes: {booking.notes or '-'}"
            ),
        ))
    return sent


def send_booking_status_update(booking: Booking, old_status: str, new_status: str):
    if not booking.contact_email:
        return None
    title = _service_title(booking)
    return send_notification(
        booking,
        booking.contact_email,
        "customer",
        "booking_status_update",
        f"Booking Update - {title}",
        (
            "Your booking status has been updated.\n\n"
            f"Service: {title}\n"
            f"Date: {_when(booking)}\n"
            f"Previous Status: {old_status}\n"
            f"New Status: {new_status}"
        ),
    )


def send_booking_reminder(booking: Booking):
    if not booking.contact_email:
        return None
    title = _service_title(booking)
    return send_notification(
        booking,
        booking.contact_email,
        "customer",
        "booking_reminder",
        f"Reminder: Upcoming Booking - {title}",
        (
            "This is a reminder about your upcoming booking.\n\n"
            f"Service: {title}\n"
            f"Business: {booking.provider.business_name}\n"
            f"Date: {_when(booking)}\n\n"
            "We look forward to seeing you!"
        ),
    )


def send_due_reminders(window_hours: int, now: Optional[datetime] = None) -> int:
    """
    Reminds every live booking starting within the window. A booking is
    skipped once it has a reminder that was sent or logged; failed deliveries
    are retried on the next run.
    """
    now = now or datetime.now()
    already = db.select(EmailNotification.booking_id).where(
        EmailNotification.notification_type == "booking_reminder",
        EmailNotification.booking_id.isnot(None),
        EmailNotification.status != "failed",
    )
    due = (
        Booking.query
        .filter(
            Booking.booking_date > now,
            Booking.booking_date <= now + timedelta(hours=window_hours),
            Booking.status.in_(("pending", "confirmed")),
            Booking.id.notin_(already),
        )
        .order_by(Booking.booking_date.asc())
        .all()
    )

    count = 0
    for booking in due:
        try:
            row = send_booking_reminder(booking)
        except Exception:
            db.session.rollback()
            logger.exception("Reminder for booking %s failed", booking.id)
            continue
        if row is not None and row.status != "failed":
            count += 1
    return count


def send_inquiry_notification(inquiry) -> Optional[EmailNotification]:
    provider = inquiry.provider
    owner_email = provider.user.email if provider and provider.user else None
    if not owner_email:
        return None

    subject = f"New Customer Inquiry - {provider.business_name}"
    body = (
        "You have received a new inquiry.\n\n"
        f"Name: {inquiry.customer_name or '-'}\n"
        f"Email: {inquiry.customer_email or '-'}\n"
        f"Phone: {inquiry.customer_phone or '-'}\n"
        f"Message: {inquiry.inquiry_message or '-'}"
    )
    delivery = send_email(owner_email, subject, body, provider=provider)

    row = EmailNotification(
        booking_id=None,
        recipient_email=owner_email,
        recipient_type="provider",
        notification_type="new_inquiry",
        subject=subject,
        body=body,
        status=delivery.status,
        channel=delivery.channel,
        error=delivery.error,
    )
    db.session.add(row)
    db.session.commit()

    logger.info("Inquiry %s notification to provider %s: %s", inquiry.id, provider.id, delivery.status)
    return row


def list_notifications(booking_id: int) -> List[EmailNotification]:
    return (
        EmailNotification.query
        .filter_by(booking_id=booking_id)
        .order_by(EmailNotification.sent_at.desc(), EmailNotification.id.desc())
        .all()
    )


def notification_to_dict(row: EmailNotification) -> dict:
    return {
        "id": row.id,
        "booking_id": row.booking_id,
        "recipient_email": row.recipient_email,
        "recipient_type": row.recipient_type,
        "notification_type": row.notification_type,
        "subject": row.subject,
        "status": row.status,
        "channel": row.channel,
        "sent_at": row.sent_at.isoformat(),
    }
