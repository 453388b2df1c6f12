from flask import Blueprint, request, jsonify, g

from security.rbac import require_provider
from services import business_info as info_service
from services.errors import NotFound
from utils.audit import log_event
from utils.validation import read_bool

business_info_bp = Blueprint("business_info", __name__, url_prefix="/business-info")
faq_bp = Blueprint("faqs", __name__, url_prefix="/faqs")


@business_info_bp.post("")
@business_info_bp.put("")
@require_provider
def save_business_info():
    data = request.get_json(silent=True) or {}
    fields = {}
    for name in info_service.BUSINESS_INFO_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            return jsonify(error=f"{name} must be a string"), 400
        fields[name] = value.strip()[:5000]

    row = info_service.upsert_business_info(g.provider.id, fields)
    log_event("BUSINESS_INFO_SAVE", user_id=g.user.id, entity="business_info", entity_id=row.id)
    return jsonify(message="Business info saved successfully",
                   business_info=info_service.business_info_to_dict(row)), 200


@business_info_bp.get("/me")
@require_provider
def my_business_info():
    row = info_service.get_business_info(g.provider.id)
    if row is None:
        return jsonify(business_info=None, message="No business info set up yet"), 200
    return jsonify(business_info=info_service.business_info_to_dict(row)), 200


def _read_faq(data: dict, partial: bool):
    """Returns (fields, error)."""
    fields = {}
    for name in ("question", "answer"):
        value = data.get(name)
        if value is None and partial:
            continue
        if not isinstance(value, str) or not value.strip():
            return None, "Question and answer are required"
        fields[name] = value.strip()

    order = data.get("display_order")
    if order is not None:
        if isinstance(order, bool) or not isinstance(order, int):
            return None, "display_order must be a whole number"
        fields["display_order"] = order

    is_active, error = read_bool(data, "is_active")
    if error:
        return None, error
    if is_active is not None:
        fields["is_active"] = is_active
    return fields, None


@faq_bp.get("")
@require_provider
def list_faqs():
    rows = info_service.list_faqs(g.provider.id)
    return jsonify(faqs=[info_service.faq_to_dict(f) for f in rows]), 200


@faq_bp.post("")
@require_provider
def create_faq():
    fields, error = _read_faq(request.get_json(silent=True) or {}, partial=False)
    if error:
        return jsonify(error=error), 400

    faq = info_service.create_faq(g.provider.id, **fields)
    log_event("FAQ_CREATE", user_id=g.user.id, entity="faq", entity_id=faq.id)
    return jsonify(message="FAQ created successfully", faq=info_service.faq_to_dict(faq)), 201


@faq_bp.put("/<int:faq_id>")
@require_provider
def update_faq(faq_id: int):
    fields, error = _read_faq(request.get_json(silent=True) or {}, partial=True)
    if error:
        return jsonify(error=error), 400

    try:
        faq = info_service.update_faq(faq_id, g.provider.id, fields)
    except NotFound as exc:
        return jsonify(error=exc.message), 404
    return jsonify(message="FAQ updated successfully", faq=info_service.faq_to_dict(faq)), 200


@faq_bp.delete("/<int:faq_id>")
@require_provider
def delete_faq(faq_id: int):
    try:
        info_service.delete_faq(faq_id, g.provider.id)
    except NotFound as exc:
        return jsonify(error=exc.message), 404

    log_event("FAQ_DELETE", user_id=g.user.id, entity="faq", entity_id=faq_id)
    return jsonify(message="FAQ deleted successfully"), 200
