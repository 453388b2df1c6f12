from datetime import datetime, timedelta

from models import db
from models.audit_log import AuditLog
from models.session import Session
from tests.conftest import PASSWORD, add_slot, at, next_monday


class TestSessions:
    def test_is_live(self):
        now = datetime(2026, 1, 1, 12, 0)
        sess = Session(created_at=now - timedelta(hours=2), last_seen_at=now - timedelta(minutes=10),
                       expires_at=now + timedelta(hours=1), revoked=False)
        assert sess.is_live(now, 3600)
        assert not sess.is_live(now, 300)

        sess.expires_at = now
        assert not sess.is_live(now, 3600)

    def test_idle_session_is_revoked(self, customer_client, customer):
        sess = Session.query.filter_by(user_id=customer.id).one()
        sess.last_seen_at = datetime.utcnow() - timedelta(hours=2)
        db.session.commit()

        assert customer_client.get("/auth/me").status_code == 401
        assert db.session.get(Session, sess.id).revoked is True

    def test_activity_refreshes_last_seen(self, customer_client, customer):
        sess = Session.query.filter_by(user_id=customer.id).one()
        sess.last_seen_at = datetime.utcnow() - timedelta(minutes=30)
        db.session.commit()

        assert customer_client.get("/auth/me").status_code == 200
        assert db.session.get(Session, sess.id).last_seen_at > datetime.utcnow() - timedelta(minutes=1)

    def test_logout_clears_cookies(self, customer_client):
        resp = customer_client.post("/auth/logout")
        cookies = resp.headers.getlist("Set-Cookie")
        assert any(c.startswith("bookwise_session=;") for c in cookies)
        assert any(c.startswith("csrf_token=;") for c in cookies)


class TestAudit:
    def test_login_failure_is_recorded(self, client, customer):
        client.post("/auth/login", json={"email": customer.email, "password": "nope-nope-nope"})
        row = AuditLog.query.filter_by(action="LOGIN_FAIL").one()
        assert row.user_id == customer.id
        assert row.details == {"email": customer.email}

    def test_guest_booking_has_no_user(self, client, provider, service):
        add_slot(provider, 1, "09:00", "17:00")
        resp = client.post("/bookings/guest", json={
            "service_id": service.id, "booking_date": at(next_monday(), "10:00").isoformat(),
            "customer_name": "Gale", "customer_email": "gale@example.com",
        })
        row = AuditLog.query.filter_by(action="GUEST_BOOKING_CREATE").one()
        assert row.user_id is None
        assert row.entity == "booking"
        assert row.entity_id == str(resp.get_json()["booking"]["id"])
        assert row.details == {"service_id": service.id}

    def test_acting_user_is_taken_from_request(self, provider_client, provider):
        provider_client.post("/availability/block", json={"blocked_date": "2025-12-25"})
        row = AuditLog.query.filter_by(action="DATE_BLOCK").one()
        assert row.user_id == provider.user_id
        assert row.ip == "127.0.0.1"

    def test_register_is_recorded(self, client):
        client.post("/auth/register", json={"email": "new@customer.test", "password": PASSWORD})
        assert AuditLog.query.filter_by(action="REGISTER_SUCCESS").count() == 1
