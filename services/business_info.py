"""Per-business details and FAQs. Both feed the chat assistant's context."""
import logging
from typing import List, Optional

from models import db
from models.business_info import BusinessInfo
from models.faq import Faq
from services.errors import NotFound

logger = logging.getLogger(__name__)

BUSINESS_INFO_FIELDS = ("business_hours", "location_details", "policies", "other_info")


def get_business_info(provider_id: int) -> Optional[BusinessInfo]:
    return BusinessInfo.query.filter_by(provider_id=provider_id).first()


def upsert_business_info(provider_id: int, fields: dict) -> BusinessInfo:
    """Creates the row or updates it; keys that are absent or empty keep their stored value."""
    row = get_business_info(provider_id)
    if row is None:
        row = BusinessInfo(provider_id=provider_id)
        db.session.add(row)
    for name in BUSINESS_INFO_FIELDS:
        value = fields.get(name)
        if value:
            setattr(row, name, value)
    db.session.commit()
    logger.info("Business info saved for provider %s", provider_id)
    return row


def business_info_to_dict(row: BusinessInfo) -> dict:
    out = {"id": row.id, "provider_id": row.provider_id}
    out.update({name: getattr(row, name) for name in BUSINESS_INFO_FIELDS})
    out["updated_at"] = row.updated_at.isoformat()
    return out


def list_faqs(provider_id: int, active_only: bool = False) -> List[Faq]:
    q = Faq.query.filter_by(provider_id=provider_id)
    if active_only:
        q = q.filter(Faq.is_active.is_(True))
    return q.order_by(Faq.display_order.asc(), Faq.created_at.asc(), Faq.id.asc()).all()


def create_faq(provider_id: int, question: str, answer: str, display_order: int = 0, is_active: bool = True) -> Faq:
    faq = Faq(
        provider_id=provider_id,
        question=question,
        answer=answer,
        display_order=display_order or 0,
        is_active=is_active,
    )
    db.session.add(faq)
    db.session.commit()
    return faq


def _owned_faq(faq_id: int, provider_id: int) -> Faq:
    faq = Faq.query.filter_by(id=faq_id, provider_id=provider_id).first()
    if faq is None:
        raise NotFound("FAQ not found")
    return faq


def update_faq(faq_id: int, provider_id: int, fields: dict) -> Faq:
    faq = _owned_faq(faq_id, provider_id)
    for name in ("question", "answer", "display_order", "is_active"):
        if fields.get(name) is not None:
            setattr(faq, name, fields[name])
    db.session.commit()
    return faq


def delete_faq(faq_id: int, provider_id: int) -> None:
    db.session.delete(_owned_faq(faq_id, provider_id))
    db.session.commit()


def format_faqs(faqs) -> Optional[str]:
    if not faqs:
        return None
    lines = ["Frequently Asked Questions (FAQs):"]
    for i, faq in enumerate(faqs, start=1):
        lines.append(f"{i}. Q: {faq.question}")
        lines.append(f"   A: {faq.answer}")
    return "\n".join(lines)


def faq_to_dict(faq: Faq) -> dict:
    return {
        "id": faq.id,
        "provider_id": faq.provider_id,
        "question": faq.question,
        "answer": faq.answer,
        "display_order": faq.display_order,
        "is_active": faq.is_active,
        "created_at": faq.created_at.isoformat(),
    }
