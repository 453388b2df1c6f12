from flask import Blueprint, request, jsonify

from models import db
from models.provider import Provider
from services import assistant
from services.errors import ServiceError

ai_bp = Blueprint("ai", __name__, url_prefix="/ai")

MAX_QUESTION_LENGTH = 2000


@ai_bp.post("/chat")
def chat():
    data = request.get_json(silent=True) or {}
    question = (data.get("question") or "").strip()
    provider_id = data.get("provider_id")

    if not question:
        return jsonify(error="question is required"), 400
    if len(question) > MAX_QUESTION_LENGTH:
        return jsonify(error=f"question must be at most {MAX_QUESTION_LENGTH} characters"), 400
    if not provider_id:
        return jsonify(error="provider_id is required"), 400

    try:
        provider = db.session.get(Provider, int(provider_id))
    except (TypeError, ValueError):
        return jsonify(error="provider_id must be a number"), 400
    if provider is None:
        return jsonify(error="Provider not found"), 404

    try:
        answer = assistant.ask(question, provider)
    except ServiceError as exc:
        return jsonify(error=exc.message), exc.status_code

    return jsonify(question=question, response=answer, provider_id=provider.id), 200
