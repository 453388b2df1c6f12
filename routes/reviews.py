from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import reviews as review_service
from services.errors import ServiceError
from utils.audit import log_event
from utils.validation import read_rating

review_bp = Blueprint("reviews", __name__, url_prefix="/reviews")
feedback_bp = Blueprint("feedback", __name__, url_prefix="/feedback")


def _read_comment(data: dict):
    comment = data.get("comment")
    if comment is None:
        return None, None
    if not isinstance(comment, str):
        return None, "comment must be a string"
    return comment.strip()[:2000], None


def _read_review_body(data: dict):
    """Returns (rating, comment, error)."""
    rating, error = read_rating(data)
    if error:
        return None, None, error
    comment, error = _read_comment(data)
    if error:
        return None, None, error
    return rating, comment, None


@review_bp.get("/service/<int:service_id>")
def service_reviews(service_id: int):
    rows = review_service.list_service_reviews(service_id)
    return jsonify(reviews=[review_service.review_to_dict(r) for r in rows]), 200


@review_bp.get("/service/<int:service_id>/rating")
def service_rating(service_id: int):
    return jsonify(review_service.service_average_rating(service_id)), 200


@review_bp.get("/provider/<int:provider_id>")
def provider_reviews(provider_id: int):
    rows = review_service.list_provider_reviews(provider_id)
    return jsonify(reviews=[review_service.review_to_dict(r) for r in rows]), 200


@review_bp.get("/provider/<int:provider_id>/rating")
def provider_rating(provider_id: int):
    return jsonify(review_service.provider_average_rating(provider_id)), 200


@review_bp.post("")
@require_roles("CUSTOMER")
def create_review():
    data = request.get_json(silent=True) or {}
    booking_id = data.get("booking_id")
    if isinstance(booking_id, bool) or not isinstance(booking_id, int):
        return jsonify(error="booking_id is required"), 400
    rating, comment, error = _read_review_body(data)
    if error:
        return jsonify(error=error), 400

    try:
        review = review_service.create_review(booking_id, g.user.id, rating, comment)
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code

    log_event("REVIEW_CREATE", user_id=g.user.id, entity="review", entity_id=review.id,
              metadata={"booking_id": booking_id, "rating": rating})
    return jsonify(message="Review created successfully", review=review_service.review_to_dict(review)), 201


@review_bp.put("/<int:review_id>")
@require_roles("CUSTOMER")
def update_review(review_id: int):
    rating, comment, error = _read_review_body(request.get_json(silent=True) or {})
    if error:
        return jsonify(error=error), 400

    try:
        review = review_service.update_review(review_id, g.user.id, rating, comment)
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code
    return jsonify(message="Review updated successfully", review=review_service.review_to_dict(review)), 200


@review_bp.delete("/<int:review_id>")
@require_roles("CUSTOMER")
def delete_review(review_id: int):
    try:
        review_service.delete_review(review_id, g.user.id)
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code

    log_event("REVIEW_DELETE", user_id=g.user.id, entity="review", entity_id=review_id)
    return jsonify(message="Review deleted successfully"), 200


@feedback_bp.post("")
def submit_feedback():
    data = request.get_json(silent=True) or {}
    booking_id = data.get("booking_id")
    if isinstance(booking_id, bool) or not isinstance(booking_id, int):
        return jsonify(error="booking_id is required"), 400
    rating, comment, error = _read_review_body(data)
    if error:
        return jsonify(error=error), 400

    try:
        row = review_service.submit_feedback(booking_id, rating, comment)
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code

    log_event("FEEDBACK_SUBMIT", entity="booking", entity_id=booking_id, metadata={"rating": rating})
    return jsonify(message="Thank you for your feedback!", feedback=review_service.feedback_to_dict(row)), 201


@feedback_bp.get("/check/<int:booking_id>")
def check_feedback(booking_id: int):
    row = review_service.get_feedback_for_booking(booking_id)
    return jsonify(
        has_feedback=row is not None,
        feedback=review_service.feedback_to_dict(row) if row else None,
    ), 200


@feedback_bp.get("/business")
@require_roles("PROVIDER")
def business_feedback():
    provider = g.user.provider
    if provider is None:
        return jsonify(error="Provider profile not found"), 404
    rows = review_service.list_business_feedback(provider.id)
    return jsonify(feedback=[review_service.feedback_to_dict(f) for f in rows]), 200
