import json

import httpx
import pytest

from routes import ai as ai_routes
from services import assistant
from services.errors import AssistantError, AssistantUnavailable
from tests.conftest import add_slot


def openai_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def reply(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture
def with_key(app):
    app.config["OPENAI_API_KEY"] = "sk-test"


def test_business_context_lists_hours_and_services(provider, service):
    provider.description = "Neighbourhood hair salon"
    add_slot(provider, 1, "09:00", "12:00")
    add_slot(provider, 1, "13:00", "17:00")
    add_slot(provider, 6, "10:00", "14:00", is_available=False)

    context = assistant.build_business_context(provider)
    assert "Business Name: Sunny Salon" in context
    assert "Description: Neighbourhood hair salon" in context
    assert "Monday: 09:00 - 12:00, 13:00 - 17:00" in context
    assert "Saturday" not in context
    assert "1. Haircut - $25.00 (30 minutes)" in context


def test_context_without_hours(provider):
    context = assistant.build_business_context(provider)
    assert "Business Hours" not in context
    assert "Available Services" not in context


def test_ask_returns_model_answer(with_key, provider, service):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["payload"] = json.loads(request.content)
        return reply("  We open at 9am.  ")

    answer = assistant.ask("When do you open?", provider, client=openai_client(handler))

    assert answer == "We open at 9am."
    assert seen["auth"] == "Bearer sk-test"
    messages = seen["payload"]["messages"]
    assert messages[0]["role"] == "system"
    assert "Sunny Salon" in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "When do you open?"}


def test_upstream_error(with_key, provider):
    client = openai_client(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(AssistantError) as exc:
        assistant.ask("Hi?", provider, client=client)
    assert exc.value.status_code == 502


def test_malformed_response(with_key, provider):
    client = openai_client(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(AssistantError):
        assistant.ask("Hi?", provider, client=client)


def test_network_error(with_key, provider):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(AssistantError):
        assistant.ask("Hi?", provider, client=openai_client(handler))


def test_missing_key(provider):
    with pytest.raises(AssistantUnavailable):
        assistant.ask("Hi?", provider)


class TestChatRoute:
    def test_not_configured(self, client, provider):
        resp = client.post("/ai/chat", json={"question": "Open Sunday?", "provider_id": provider.id})
        assert resp.status_code == 503

    def test_answer(self, client, provider, monkeypatch):
        monkeypatch.setattr(ai_routes.assistant, "ask", lambda question, p: f"{p.business_name}: yes")
        resp = client.post("/ai/chat", json={"question": "Open Sunday?", "provider_id": provider.id})
        assert resp.status_code == 200
        assert resp.get_json() == {"question": "Open Sunday?", "response": "Sunny Salon: yes", "provider_id": provider.id}

    def test_unknown_provider(self, client, app):
        assert client.post("/ai/chat", json={"question": "Hi?", "provider_id": 999}).status_code == 404

    def test_validation(self, client, provider):
        assert client.post("/ai/chat", json={"provider_id": provider.id}).status_code == 400
        assert client.post("/ai/chat", json={"question": "Hi?"}).status_code == 400
        assert client.post("/ai/chat", json={"question": "x" * 2001, "provider_id": provider.id}).status_code == 400
