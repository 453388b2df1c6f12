"""Customer reviews and anonymous appointment feedback. Both require a completed booking."""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking
from models.feedback import Feedback
from models.review import Review
from services.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)


def create_review(booking_id: int, customer_id: int, rating: int, comment: Optional[str] = None) -> Review:
    booking = Booking.query.filter_by(id=booking_id, customer_id=customer_id).first()
    if booking is None:
        raise NotFound("Booking not found or unauthorized")
    if booking.status != "completed":
        raise InvalidInput("Can only review completed bookings")
    if Review.query.filter_by(booking_id=booking.id).first() is not None:
        raise InvalidInput("Review already exists for this booking")

    review = Review(
        booking_id=booking.id,
        customer_id=customer_id,
        service_id=booking.service_id,
        provider_id=booking.provider_id,
        rating=rating,
        comment=comment or None,
    )
    db.session.add(review)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise InvalidInput("Review already exists for this booking")

    logger.info("Review %s for booking %s (%s stars)", review.id, booking.id, rating)
    return review


def update_review(review_id: int, customer_id: int, rating: int, comment: Optional[str] = None) -> Review:
    review = Review.query.filter_by(id=review_id, customer_id=customer_id).first()
    if review is None:
        raise NotFound("Review not found or unauthorized")
    review.rating = rating
    review.comment = comment or None
    db.session.commit()
    return review


def delete_review(review_id: int, customer_id: int) -> None:
    review = Review.query.filter_by(id=review_id, customer_id=customer_id).first()
    if review is None:
        raise NotFound("Review not found or unauthorized")
    db.session.delete(review)
    db.session.commit()


def list_service_reviews(service_id: int) -> List[Review]:
    return Review.query.filter_by(service_id=service_id).order_by(Review.created_at.desc(), Review.id.desc()).all()


def list_provider_reviews(provider_id: int) -> List[Review]:
    return Review.query.filter_by(provider_id=provider_id).order_by(Review.created_at.desc(), Review.id.desc()).all()


def _average(column_filter) -> dict:
    avg, count = db.session.query(db.func.avg(Review.rating), db.func.count(Review.id)).filter(column_filter).one()
    return {
        "average_rating": round(float(avg), 1) if avg is not None else None,
        "review_count": int(count or 0),
    }


def service_average_rating(service_id: int) -> dict:
    return _average(Review.service_id == service_id)


def provider_average_rating(provider_id: int) -> dict:
    return _average(Review.provider_id == provider_id)


def review_to_dict(review: Review) -> dict:
    return {
        "id": review.id,
        "booking_id": review.booking_id,
        "service_id": review.service_id,
        "service_title": review.service.title if review.service else None,
        "provider_id": review.provider_id,
        "customer_id": review.customer_id,
        "customer_name": review.customer.full_name if review.customer else None,
        "rating": review.rating,
        "comment": review.comment,
        "created_at": review.created_at.isoformat(),
    }


def submit_feedback(booking_id: int, rating: int, comment: Optional[str] = None) -> Feedback:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFound("Appointment not found")
    if booking.status != "completed":
        raise InvalidInput("Feedback can only be submitted for completed appointments")
    if get_feedback_for_booking(booking.id) is not None:
        raise InvalidInput("Feedback already submitted for this appointment")

    row = Feedback(booking_id=booking.id, provider_id=booking.provider_id, rating=rating, comment=comment or None)
    db.session.add(row)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise InvalidInput("Feedback already submitted for this appointment")
    return row


def get_feedback_for_booking(booking_id: int) -> Optional[Feedback]:
    return Feedback.query.filter_by(booking_id=booking_id).first()


def list_business_feedback(provider_id: int) -> List[Feedback]:
    return Feedback.query.filter_by(provider_id=provider_id).order_by(Feedback.created_at.desc(), Feedback.id.desc()).all()


def feedback_to_dict(row: Feedback) -> dict:
    booking = row.booking
    return {
        "id": row.id,
        "booking_id": row.booking_id,
        "rating": row.rating,
        "comment": row.comment,
        "created_at": row.created_at.isoformat(),
        "service_id": booking.service_id if booking else None,
        "service_title": booking.service.title if booking and booking.service else None,
        "customer_name": booking.contact_name if booking else None,
        "booking_date": booking.booking_date.isoformat() if booking else None,
    }
