import re

from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.provider import Provider, EMAIL_SERVICE_TYPES
from models.service import Service
from security.rbac import require_roles, require_provider
from security.vault import get_vault
from services.availability import get_weekly_availability, slot_to_dict
from utils.audit import log_event
from utils.validation import read_bool

provider_bp = Blueprint("providers", __name__, url_prefix="/providers")
public_bp = Blueprint("public", __name__, url_prefix="/public")

PROFILE_FIELDS = {"business_name": 160, "description": 5000, "phone": 30, "address": 255}
EMAIL_CONFIG_TEXT_FIELDS = ("email_service_type", "host", "user", "password", "from_address")


def _slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").strip().lower()).strip("-")
    return slug[:160] or "business"


def _unique_slug(business_name: str) -> str:
    base = _slugify(business_name)
    slug = base
    n = 2
    while Provider.query.filter_by(business_slug=slug).first() is not None:
        slug = f"{base}-{n}"
        n += 1
    return slug


def _read_profile(data: dict):
    """Returns (fields, error). Only keys present in the payload are included."""
    fields = {}
    for name, max_len in PROFILE_FIELDS.items():
        if name not in data:
            continue
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            return None, f"Invalid {name}"
        value = (value or "").strip() or None
        if value and len(value) > max_len:
            return None, f"Invalid {name}"
        fields[name] = value
    return fields, None


def provider_to_dict(p: Provider) -> dict:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "business_name": p.business_name,
        "business_slug": p.business_slug,
        "description": p.description,
        "phone": p.phone,
        "address": p.address,
        "created_at": p.created_at.isoformat(),
    }


def email_config_to_dict(p: Provider) -> dict:
    # Never expose the password or its ciphertext
    return {
        "email_service_type": p.email_service_type,
        "host": p.email_smtp_host,
        "port": p.email_smtp_port,
        "secure": p.email_smtp_secure,
        "user": p.email_smtp_user,
        "from_address": p.email_from_address,
        "has_password": bool(p.email_smtp_password_encrypted),
    }


@provider_bp.post("")
@require_roles("PROVIDER")
def create_provider():
    data = request.get_json(silent=True) or {}
    fields, error = _read_profile(data)
    if error:
        return jsonify(error=error), 400
    if not fields.get("business_name"):
        return jsonify(error="business_name is required"), 400

    if g.user.provider is not None:
        return jsonify(error="User already has a provider profile"), 409

    provider = Provider(user_id=g.user.id, business_slug=_unique_slug(fields["business_name"]), **fields)
    db.session.add(provider)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="User already has a provider profile"), 409

    log_event("PROVIDER_CREATE", user_id=g.user.id, entity="provider", entity_id=provider.id)
    return jsonify(provider_to_dict(provider)), 201


@provider_bp.get("/me")
@require_provider
def get_my_provider():
    return jsonify(provider_to_dict(g.provider)), 200


@provider_bp.put("/me")
@require_provider
def update_my_provider():
    data = request.get_json(silent=True) or {}
    fields, error = _read_profile(data)
    if error:
        return jsonify(error=error), 400
    if "business_name" in fields and not fields["business_name"]:
        return jsonify(error="business_name cannot be empty"), 400

    for name, value in fields.items():
        setattr(g.provider, name, value)
    db.session.commit()

    log_event("PROVIDER_UPDATE", user_id=g.user.id, entity="provider", entity_id=g.provider.id)
    return jsonify(provider_to_dict(g.provider)), 200


@provider_bp.get("/me/email-config")
@require_provider
def get_email_config():
    return jsonify(email_config_to_dict(g.provider)), 200


@provider_bp.put("/me/email-config")
@require_provider
def update_email_config():
    data = request.get_json(silent=True) or {}
    for name in EMAIL_CONFIG_TEXT_FIELDS:
        if data.get(name) is not None and not isinstance(data[name], str):
            return jsonify(error=f"{name} must be a string"), 400

    service_type = (data.get("email_service_type") or "").strip().lower()
    if service_type not in EMAIL_SERVICE_TYPES:
        return jsonify(error="email_service_type must be one of smtp, gmail, sendgrid"), 400

    host = (data.get("host") or "").strip() or None
    port = data.get("port")
    if service_type == "smtp":
        if not host:
            return jsonify(error="host is required for smtp"), 400
        try:
            port = int(port) if port is not None else 587
        except (TypeError, ValueError):
            return jsonify(error="port must be a number"), 400
        if not 1 <= port <= 65535:
            return jsonify(error="port must be between 1 and 65535"), 400
    else:
        host, port = None, None

    secure, error = read_bool(data, "secure", default=False)
    if error:
        return jsonify(error=error), 400

    password = data.get("password")
    provider = g.provider
    provider.email_service_type = service_type
    provider.email_smtp_host = host
    provider.email_smtp_port = port
    provider.email_smtp_secure = secure
    provider.email_smtp_user = (data.get("user") or "").strip() or None
    provider.email_from_address = (data.get("from_address") or "").strip() or None

    # Omitting the password keeps the stored one
    if password:
        provider.email_smtp_password_encrypted = get_vault().encrypt(password)

    db.session.commit()
    log_event("EMAIL_CONFIG_UPDATE", user_id=g.user.id, entity="provider", entity_id=provider.id,
              metadata={"email_service_type": service_type, "password_changed": bool(password)})
    return jsonify(message="Email configuration updated", email_config=email_config_to_dict(provider)), 200


@public_bp.get("/b/<slug>")
def get_business_by_slug(slug: str):
    provider = Provider.query.filter_by(business_slug=slug.strip().lower()).first()
    if provider is None:
        return jsonify(error="Business not found"), 404

    services = (
        Service.query
        .filter_by(provider_id=provider.id, is_active=True)
        .order_by(Service.id.asc())
        .all()
    )
    return jsonify(
        business=provider_to_dict(provider),
        services=[
            {
                "id": s.id,
                "title": s.title,
                "description": s.description,
                "price": s.price,
                "duration_minutes": s.duration_minutes,
            }
            for s in services
        ],
        availability=[slot_to_dict(s) for s in get_weekly_availability(provider.id) if s.is_available],
    ), 200
