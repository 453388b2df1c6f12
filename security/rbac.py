from functools import wraps
from flask import g, jsonify

def require_roles(*role_names: str):
    """
    Usage: @require_roles("PROVIDER")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            if not any(user.has_role(name) for name in role_names):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator

def require_provider(fn):
    """PROVIDER role plus an existing business profile, exposed as g.provider."""
    @require_roles("PROVIDER")
    @wraps(fn)
    def wrapper(*args, **kwargs):
        provider = g.user.provider
        if provider is None:
            return jsonify(error="Provider profile not found"), 404
        g.provider = provider
        return fn(*args, **kwargs)
    return wrapper
