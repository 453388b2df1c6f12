import json
import logging
from flask import request, has_request_context, g
from models import db
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)

def _request_meta():
    if not has_request_context():
        return None, None, None
    ip = request.headers.get("X-Forwarded-For", request.remote_addr)
    user_agent = (request.headers.get("User-Agent") or "")[:255] or None
    user = getattr(g, "user", None)
    return ip, user_agent, user.id if user is not None else None

def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None):
    """
    Appends one row to audit_logs. Inside a request the acting user, IP and
    user agent are filled in from the request when not given.
    """
    ip, user_agent, request_user_id = _request_meta()

    db.session.add(AuditLog(
        user_id=user_id if user_id is not None else request_user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    ))
    db.session.commit()
    logger.debug("audit %s %s=%s", action, entity, entity_id)
