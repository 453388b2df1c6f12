from models.business_info import BusinessInfo
from services import assistant
from services import business_info as info_service
from tests.conftest import add_slot, make_provider


class TestBusinessInfoApi:
    def test_upsert_and_read(self, provider_client, provider):
        assert provider_client.get("/business-info/me").get_json() == {
            "business_info": None, "message": "No business info set up yet",
        }

        resp = provider_client.post("/business-info", json={"policies": "24h cancellation", "location_details": "2nd floor"})
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Business info saved successfully"

        # Absent keys keep what was saved before
        resp = provider_client.put("/business-info", json={"policies": "48h cancellation"})
        info = resp.get_json()["business_info"]
        assert info["policies"] == "48h cancellation"
        assert info["location_details"] == "2nd floor"
        assert BusinessInfo.query.filter_by(provider_id=provider.id).count() == 1

        assert provider_client.get("/business-info/me").get_json()["business_info"]["policies"] == "48h cancellation"

    def test_fields_must_be_text(self, provider_client):
        resp = provider_client.post("/business-info", json={"policies": ["no", "refunds"]})
        assert resp.status_code == 400

    def test_customers_cannot_edit(self, customer_client):
        assert customer_client.post("/business-info", json={"policies": "x"}).status_code == 403


class TestFaqApi:
    def test_crud(self, provider_client):
        resp = provider_client.post("/faqs", json={"question": "Do you take walk-ins?", "answer": "Yes, before noon."})
        assert resp.status_code == 201
        faq_id = resp.get_json()["faq"]["id"]

        resp = provider_client.put(f"/faqs/{faq_id}", json={"answer": "Yes, any time.", "is_active": False})
        assert resp.status_code == 200
        assert resp.get_json()["faq"]["answer"] == "Yes, any time."
        assert resp.get_json()["faq"]["is_active"] is False
        assert resp.get_json()["faq"]["question"] == "Do you take walk-ins?"

        assert [f["id"] for f in provider_client.get("/faqs").get_json()["faqs"]] == [faq_id]
        assert provider_client.delete(f"/faqs/{faq_id}").status_code == 200
        assert provider_client.get("/faqs").get_json()["faqs"] == []

    def test_question_and_answer_required(self, provider_client):
        resp = provider_client.post("/faqs", json={"question": "Parking?"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Question and answer are required"

    def test_is_active_must_be_boolean(self, provider_client):
        resp = provider_client.post("/faqs", json={"question": "Q", "answer": "A", "is_active": "no"})
        assert resp.status_code == 400

    def test_other_providers_faq_is_not_found(self, app, provider_client):
        other = make_provider("other@shop.test", "Other Shop")
        faq = info_service.create_faq(other.id, "Q", "A")
        assert provider_client.put(f"/faqs/{faq.id}", json={"answer": "B"}).status_code == 404
        assert provider_client.delete(f"/faqs/{faq.id}").get_json()["error"] == "FAQ not found"


class TestFaqOrdering:
    def test_display_order_then_creation(self, provider):
        info_service.create_faq(provider.id, "Second", "b", display_order=2)
        info_service.create_faq(provider.id, "First", "a", display_order=1)
        info_service.create_faq(provider.id, "Hidden", "c", display_order=0, is_active=False)
        assert [f.question for f in info_service.list_faqs(provider.id)] == ["Hidden", "First", "Second"]
        assert [f.question for f in info_service.list_faqs(provider.id, active_only=True)] == ["First", "Second"]

    def test_format_faqs(self, provider):
        info_service.create_faq(provider.id, "Parking?", "Street parking only.")
        assert info_service.format_faqs(info_service.list_faqs(provider.id)) == (
            "Frequently Asked Questions (FAQs):\n1. Q: Parking?\n   A: Street parking only."
        )
        assert info_service.format_faqs([]) is None


class TestAssistantContext:
    def test_includes_business_info_and_active_faqs(self, provider):
        info_service.upsert_business_info(provider.id, {
            "business_hours": "Mon-Fri 9-5", "location_details": "Next to the bakery",
            "policies": "24h cancellation", "other_info": "Cash only",
        })
        info_service.create_faq(provider.id, "Parking?", "Street parking only.")
        info_service.create_faq(provider.id, "Pets?", "No pets.", is_active=False)

        context = assistant.build_business_context(provider)
        assert "Business Hours:\nMon-Fri 9-5" in context
        assert "Location Details: Next to the bakery" in context
        assert "Policies: 24h cancellation" in context
        assert "Additional Information: Cash only" in context
        assert "1. Q: Parking?" in context
        assert "Pets?" not in context

    def test_weekly_schedule_wins_over_free_text_hours(self, provider):
        add_slot(provider, 1, "09:00", "12:00")
        info_service.upsert_business_info(provider.id, {"business_hours": "Mon-Fri 9-5"})
        context = assistant.build_business_context(provider)
        assert "Monday: 09:00 - 12:00" in context
        assert "Mon-Fri 9-5" not in context
