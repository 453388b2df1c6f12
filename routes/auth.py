from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.password import hash_password, verify_password, validate_password
from security.session import create_session, revoke_session, cookie_name, set_session_cookie, clear_session_cookie
from security.csrf import issue_csrf_token, clear_csrf_token
from services.bookings import is_valid_email
from utils.audit import log_event
from utils.auth_context import login_required
from utils.seed import ACCOUNT_TYPE_ROLES

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "roles": [r.name for r in user.roles],
        "provider_id": user.provider.id if user.provider else None,
    }


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    account_type = (data.get("account_type") or "customer").strip().lower()
    full_name = (data.get("full_name") or "").strip() or None
    phone_number = (data.get("phone_number") or "").strip() or None

    if not is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if account_type not in ACCOUNT_TYPE_ROLES:
        return jsonify(error="account_type must be customer or provider"), 400
    errors = validate_password(password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400
    if full_name and len(full_name) > 120:
        return jsonify(error="Invalid full_name"), 400
    if phone_number and len(phone_number) > 30:
        return jsonify(error="Invalid phone_number"), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password, rounds=current_app.config.get("BCRYPT_ROUNDS", 12)),
        full_name=full_name,
        phone_number=phone_number,
    )
    db.session.add(user)
    db.session.flush()

    role = Role.query.filter_by(name=ACCOUNT_TYPE_ROLES[account_type]).first()
    if role:
        user.roles.append(role)

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"account_type": account_type})

    return jsonify(message="Registered successfully", user=_user_to_dict(user)), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    resp = jsonify(message="Login OK", user=_user_to_dict(user))
    set_session_cookie(resp, create_session(user.id))
    issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_user_to_dict(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(request.cookies.get(cookie_name()))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    clear_session_cookie(resp)
    clear_csrf_token(resp)
    return resp, 200
