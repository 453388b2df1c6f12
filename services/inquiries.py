import logging
from typing import List, Optional

from models import db
from models.inquiry import CustomerInquiry, INQUIRY_STATUSES
from models.provider import Provider
from services import notifications
from services.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)

INQUIRY_FIELDS = {"customer_name": 120, "customer_email": 255, "customer_phone": 30, "inquiry_message": 5000}


def create_inquiry(provider_id: int, fields: dict) -> CustomerInquiry:
    """Stores a contact request and emails the business owner; email failures are only logged."""
    values = {name: (fields.get(name) or "").strip()[:limit] or None for name, limit in INQUIRY_FIELDS.items()}
    if not any(values.values()):
        raise InvalidInput("At least one field (name, email, phone, or message) must be provided")

    provider = db.session.get(Provider, provider_id)
    if provider is None:
        raise NotFound("Provider not found")

    inquiry = CustomerInquiry(provider_id=provider.id, status="new", **values)
    db.session.add(inquiry)
    db.session.commit()
    logger.info("Inquiry %s created for provider %s", inquiry.id, provider.id)

    try:
        notifications.send_inquiry_notification(inquiry)
    except Exception:
        db.session.rollback()
        logger.exception("Failed to send inquiry notification for inquiry %s", inquiry.id)
    return inquiry


def list_inquiries(provider_id: int, status: Optional[str] = None) -> List[CustomerInquiry]:
    q = CustomerInquiry.query.filter_by(provider_id=provider_id)
    if status:
        q = q.filter_by(status=status)
    return q.order_by(CustomerInquiry.created_at.desc(), CustomerInquiry.id.desc()).all()


def get_inquiry(inquiry_id: int, provider_id: int) -> CustomerInquiry:
    inquiry = CustomerInquiry.query.filter_by(id=inquiry_id, provider_id=provider_id).first()
    if inquiry is None:
        raise NotFound("Inquiry not found or access denied")
    return inquiry


def update_inquiry_status(inquiry_id: int, provider_id: int, status: str) -> CustomerInquiry:
    if status not in INQUIRY_STATUSES:
        raise InvalidInput("Invalid status. Must be one of: " + ", ".join(INQUIRY_STATUSES))
    inquiry = get_inquiry(inquiry_id, provider_id)
    inquiry.status = status
    db.session.commit()
    return inquiry


def inquiry_to_dict(inquiry: CustomerInquiry) -> dict:
    return {
        "id": inquiry.id,
        "provider_id": inquiry.provider_id,
        "customer_name": inquiry.customer_name,
        "customer_email": inquiry.customer_email,
        "customer_phone": inquiry.customer_phone,
        "inquiry_message": inquiry.inquiry_message,
        "status": inquiry.status,
        "created_at": inquiry.created_at.isoformat(),
        "updated_at": inquiry.updated_at.isoformat(),
    }
