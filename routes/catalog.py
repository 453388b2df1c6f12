from flask import Blueprint, request, jsonify, g

from models import db
from models.provider import Provider
from models.service import Service
from security.rbac import require_provider
from utils.audit import log_event
from utils.validation import read_bool

catalog_bp = Blueprint("catalog", __name__, url_prefix="/services")


def service_to_dict(s: Service) -> dict:
    return {
        "id": s.id,
        "provider_id": s.provider_id,
        "business_name": s.provider.business_name if s.provider else None,
        "title": s.title,
        "description": s.description,
        "price": s.price,
        "duration_minutes": s.duration_minutes,
        "is_active": s.is_active,
        "created_at": s.created_at.isoformat(),
    }


def _read_service(data: dict, partial: bool):
    """Returns (fields, error)."""
    fields = {}

    if "title" in data or not partial:
        title = (data.get("title") or "").strip()
        if not title or len(title) > 160:
            return None, "title is required (max 160 characters)"
        fields["title"] = title

    if "description" in data:
        fields["description"] = (data.get("description") or "").strip() or None

    for name in ("price", "duration_minutes"):
        if name not in data or data.get(name) is None:
            continue
        try:
            value = int(data.get(name))
        except (TypeError, ValueError):
            return None, f"{name} must be a whole number"
        if value < 0:
            return None, f"{name} must not be negative"
        fields[name] = value

    if "is_active" in data:
        is_active, error = read_bool(data, "is_active", default=True)
        if error:
            return None, error
        fields["is_active"] = is_active

    return fields, None


@catalog_bp.post("")
@require_provider
def create_service():
    fields, error = _read_service(request.get_json(silent=True) or {}, partial=False)
    if error:
        return jsonify(error=error), 400

    service = Service(provider_id=g.provider.id, **fields)
    db.session.add(service)
    db.session.commit()

    log_event("SERVICE_CREATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(service_to_dict(service)), 201


@catalog_bp.get("")
@require_provider
def list_my_services():
    rows = Service.query.filter_by(provider_id=g.provider.id).order_by(Service.created_at.desc()).all()
    return jsonify([service_to_dict(s) for s in rows]), 200


@catalog_bp.get("/browse")
def browse_services():
    q = (
        Service.query
        .join(Provider, Service.provider_id == Provider.id)
        .filter(Service.is_active.is_(True))
    )
    text = (request.args.get("q") or "").strip()
    if text:
        like = f"%{text}%"
        q = q.filter(db.or_(Service.title.ilike(like), Service.description.ilike(like), Provider.business_name.ilike(like)))
    provider_id = request.args.get("provider_id", type=int)
    if provider_id:
        q = q.filter(Service.provider_id == provider_id)

    rows = q.order_by(Service.created_at.desc()).limit(200).all()
    return jsonify([service_to_dict(s) for s in rows]), 200


@catalog_bp.get("/<int:service_id>")
def get_service(service_id: int):
    service = db.session.get(Service, service_id)
    if service is None or not service.is_active:
        return jsonify(error="Service not found"), 404
    return jsonify(service_to_dict(service)), 200


@catalog_bp.put("/<int:service_id>")
@require_provider
def update_service(service_id: int):
    service = Service.query.filter_by(id=service_id, provider_id=g.provider.id).first()
    if service is None:
        return jsonify(error="Service not found"), 404

    fields, error = _read_service(request.get_json(silent=True) or {}, partial=True)
    if error:
        return jsonify(error=error), 400
    for name, value in fields.items():
        setattr(service, name, value)
    db.session.commit()

    log_event("SERVICE_UPDATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(service_to_dict(service)), 200


@catalog_bp.delete("/<int:service_id>")
@require_provider
def deactivate_service(service_id: int):
    # Soft delete: existing bookings keep pointing at the row
    service = Service.query.filter_by(id=service_id, provider_id=g.provider.id).first()
    if service is None:
        return jsonify(error="Service not found"), 404

    service.is_active = False
    db.session.commit()

    log_event("SERVICE_DEACTIVATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(message="Service deactivated"), 200
