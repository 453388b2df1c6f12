from flask import Blueprint, request, jsonify, g

from security.rbac import require_provider
from services import inquiries as inquiry_service
from services.errors import ServiceError
from utils.audit import log_event

inquiry_bp = Blueprint("inquiries", __name__, url_prefix="/inquiries")


@inquiry_bp.post("")
def create_inquiry():
    data = request.get_json(silent=True) or {}
    provider_id = data.get("provider_id")
    if isinstance(provider_id, bool) or not isinstance(provider_id, int):
        return jsonify(error="provider_id is required"), 400
    for name in inquiry_service.INQUIRY_FIELDS:
        if data.get(name) is not None and not isinstance(data.get(name), str):
            return jsonify(error=f"{name} must be a string"), 400

    try:
        inquiry = inquiry_service.create_inquiry(provider_id, data)
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code

    log_event("INQUIRY_CREATE", entity="inquiry", entity_id=inquiry.id, metadata={"provider_id": provider_id})
    return jsonify(message="Inquiry submitted successfully", inquiry=inquiry_service.inquiry_to_dict(inquiry)), 201


@inquiry_bp.get("")
@require_provider
def list_inquiries():
    rows = inquiry_service.list_inquiries(g.provider.id, status=request.args.get("status"))
    return jsonify(inquiries=[inquiry_service.inquiry_to_dict(i) for i in rows]), 200


@inquiry_bp.get("/<int:inquiry_id>")
@require_provider
def get_inquiry(inquiry_id: int):
    try:
        inquiry = inquiry_service.get_inquiry(inquiry_id, g.provider.id)
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code
    return jsonify(inquiry=inquiry_service.inquiry_to_dict(inquiry)), 200


@inquiry_bp.patch("/<int:inquiry_id>/status")
@require_provider
def update_inquiry_status(inquiry_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower() if isinstance(data.get("status"), str) else ""

    try:
        inquiry = inquiry_service.update_inquiry_status(inquiry_id, g.provider.id, status)
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code

    log_event("INQUIRY_STATUS_UPDATE", user_id=g.user.id, entity="inquiry", entity_id=inquiry.id,
              metadata={"status": status})
    return jsonify(message="Inquiry status updated successfully", inquiry=inquiry_service.inquiry_to_dict(inquiry)), 200
