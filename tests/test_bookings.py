import pytest

from models import db
from models.booking import Booking
from models.email_notification import EmailNotification
from services import bookings as booking_service
from services.availability import REASON_ALREADY_BOOKED, REASON_OUTSIDE_HOURS, SlotCheck
from services.errors import BookingConflict, InvalidInput, InvalidTransition, NotFound, SlotUnavailable
from tests.conftest import add_slot, at, make_provider, make_service, make_user, next_monday

GUEST = {"customer_name": "Gale Guest", "customer_email": "Gale@Example.com", "customer_phone": "555-0100"}


@pytest.fixture
def monday(provider):
    add_slot(provider, 1, "09:00", "17:00")
    return next_monday()


def book_guest(service, when, **guest):
    return booking_service.create_booking(service.id, when, guest={**GUEST, **guest})


class TestCreateBooking:
    def test_customer_booking_is_pending(self, service, customer, monday):
        booking = booking_service.create_booking(service.id, at(monday, "10:00"), notes="First visit", customer=customer)

        assert booking.status == "pending"
        assert booking.customer_id == customer.id
        assert booking.provider_id == service.provider_id
        assert booking.notes == "First visit"
        assert booking.customer_email is None
        assert booking.contact_email == "pat@customer.test"

    def test_guest_contact_is_normalized(self, service, monday):
        booking = book_guest(service, at(monday, "10:00"))
        assert booking.customer_id is None
        assert booking.customer_email == "gale@example.com"
        assert booking.customer_name == "Gale Guest"
        assert booking.customer_phone == "555-0100"

    def test_slot_key_drops_seconds(self, service, monday):
        when = at(monday, "10:00").replace(second=45)
        booking = book_guest(service, when)
        assert booking.booking_date == when
        assert booking.slot_key == at(monday, "10:00")

    @pytest.mark.parametrize("guest", [
        {"customer_name": ""},
        {"customer_email": ""},
        {"customer_email": "not-an-email"},
        {"customer_email": "two@@example.com"},
    ])
    def test_guest_validation(self, service, monday, guest):
        with pytest.raises(InvalidInput):
            book_guest(service, at(monday, "10:00"), **guest)
        assert Booking.query.count() == 0

    def test_unknown_service(self, app, monday):
        with pytest.raises(NotFound, match="Service not found"):
            booking_service.create_booking(999, at(monday, "10:00"), guest=GUEST)

    def test_inactive_service(self, service, monday):
        service.is_active = False
        db.session.commit()
        with pytest.raises(NotFound, match="Service is not available"):
            book_guest(service, at(monday, "10:00"))

    def test_outside_hours(self, service, monday):
        with pytest.raises(SlotUnavailable) as exc:
            book_guest(service, at(monday, "18:00"))
        assert exc.value.message == REASON_OUTSIDE_HOURS

    def test_second_booking_same_minute_is_rejected(self, service, monday):
        book_guest(service, at(monday, "10:00"))
        with pytest.raises(SlotUnavailable) as exc:
            book_guest(service, at(monday, "10:00"), customer_email="other@example.com")
        assert exc.value.message == REASON_ALREADY_BOOKED
        assert Booking.query.count() == 1

    def test_other_service_same_provider_same_minute_is_rejected(self, provider, service, monday):
        other_service = make_service(provider, "Shave", 1500)
        book_guest(service, at(monday, "10:00"))
        with pytest.raises(SlotUnavailable):
            book_guest(other_service, at(monday, "10:00"))

    def test_concurrent_insert_is_a_conflict(self, service, monday, monkeypatch):
        # Both requests pass the check before either inserts
        monkeypatch.setattr(booking_service, "is_slot_available", lambda provider_id, instant: SlotCheck(True))
        book_guest(service, at(monday, "10:00"))
        with pytest.raises(BookingConflict) as exc:
            book_guest(service, at(monday, "10:00"), customer_email="late@example.com")

        assert exc.value.status_code == 409
        assert exc.value.message == REASON_ALREADY_BOOKED
        assert Booking.query.filter(Booking.status != "cancelled").count() == 1

    def test_rebooking_after_cancel(self, service, customer, monday):
        first = booking_service.create_booking(service.id, at(monday, "10:00"), customer=customer)
        booking_service.cancel_booking(first.id, customer.id)
        second = book_guest(service, at(monday, "10:00"))
        assert second.id != first.id
        assert second.status == "pending"

    def test_confirmation_emails_are_recorded(self, service, monday):
        booking = book_guest(service, at(monday, "10:00"))
        rows = EmailNotification.query.filter_by(booking_id=booking.id).order_by(EmailNotification.id).all()

        assert [(r.recipient_type, r.notification_type) for r in rows] == [
            ("customer", "booking_confirmation"),
            ("provider", "new_booking"),
        ]
        assert rows[0].recipient_email == "gale@example.com"
        assert rows[1].recipient_email == "owner@salon.test"
        assert {r.status for r in rows} == {"logged"}

    def test_email_failure_does_not_fail_booking(self, service, monday, monkeypatch):
        def boom(booking):
            raise RuntimeError("mail server exploded")

        monkeypatch.setattr(booking_service.notifications, "send_booking_confirmation", boom)
        booking = book_guest(service, at(monday, "10:00"))
        assert db.session.get(Booking, booking.id).status == "pending"


class TestStatus:
    @pytest.fixture
    def booking(self, service, monday):
        return book_guest(service, at(monday, "10:00"))

    def test_confirm_then_complete(self, provider, booking):
        assert booking_service.update_booking_status(booking.id, provider.id, "confirmed").status == "confirmed"
        assert booking_service.update_booking_status(booking.id, provider.id, "completed").status == "completed"

    def test_cancel_sets_timestamp(self, provider, booking):
        updated = booking_service.update_booking_status(booking.id, provider.id, "cancelled")
        assert updated.status == "cancelled"
        assert updated.cancelled_at is not None

    def test_same_status_is_a_noop(self, provider, booking):
        before = EmailNotification.query.count()
        booking_service.update_booking_status(booking.id, provider.id, "pending")
        assert EmailNotification.query.count() == before

    @pytest.mark.parametrize("path", [
        ["completed"],
        ["cancelled", "pending"],
        ["cancelled", "confirmed"],
        ["confirmed", "pending"],
    ])
    def test_illegal_transitions(self, provider, booking, path):
        *steps, last = path
        for status in steps:
            booking_service.update_booking_status(booking.id, provider.id, status)
        with pytest.raises(InvalidTransition):
            booking_service.update_booking_status(booking.id, provider.id, last)

    def test_unknown_status(self, provider, booking):
        with pytest.raises(InvalidInput):
            booking_service.update_booking_status(booking.id, provider.id, "archived")

    def test_other_provider_cannot_update(self, booking):
        other = make_provider("other@shop.test", "Other Shop")
        with pytest.raises(NotFound):
            booking_service.update_booking_status(booking.id, other.id, "confirmed")

    def test_status_change_notifies_customer(self, provider, booking):
        booking_service.update_booking_status(booking.id, provider.id, "confirmed")
        row = EmailNotification.query.filter_by(booking_id=booking.id, notification_type="booking_status_update").one()
        assert "Previous Status: pending" in row.body
        assert "New Status: confirmed" in row.body


class TestCustomerAccess:
    def test_cancel_own_booking(self, service, customer, monday):
        booking = booking_service.create_booking(service.id, at(monday, "10:00"), customer=customer)
        cancelled = booking_service.cancel_booking(booking.id, customer.id)
        assert cancelled.status == "cancelled"
        assert booking_service.cancel_booking(booking.id, customer.id).status == "cancelled"

    def test_cannot_cancel_someone_elses_booking(self, service, customer, monday):
        booking = booking_service.create_booking(service.id, at(monday, "10:00"), customer=customer)
        stranger = make_user("stranger@customer.test", "CUSTOMER")
        with pytest.raises(NotFound):
            booking_service.cancel_booking(booking.id, stranger.id)

    def test_get_booking_visibility(self, provider, service, customer, monday):
        booking = booking_service.create_booking(service.id, at(monday, "10:00"), customer=customer)
        assert booking_service.get_booking(booking.id, customer).id == booking.id
        assert booking_service.get_booking(booking.id, provider.user).id == booking.id

        stranger = make_user("stranger@customer.test", "CUSTOMER")
        with pytest.raises(NotFound):
            booking_service.get_booking(booking.id, stranger)

    def test_lists(self, provider, service, customer, monday):
        early = booking_service.create_booking(service.id, at(monday, "09:00"), customer=customer)
        late = booking_service.create_booking(service.id, at(monday, "15:00"), customer=customer)
        guest = book_guest(service, at(monday, "12:00"))
        booking_service.update_booking_status(guest.id, provider.id, "confirmed")

        assert [b.id for b in booking_service.list_customer_bookings(customer.id)] == [late.id, early.id]
        assert [b.id for b in booking_service.list_provider_bookings(provider.id)] == [late.id, guest.id, early.id]
        assert [b.id for b in booking_service.list_provider_bookings(provider.id, status="confirmed")] == [guest.id]

    def test_to_dict(self, service, customer, monday):
        booking = booking_service.create_booking(service.id, at(monday, "10:00"), customer=customer)
        out = booking_service.booking_to_dict(booking)
        assert out["service_title"] == "Haircut"
        assert out["price"] == 2500
        assert out["business_name"] == "Sunny Salon"
        assert out["customer_name"] == "Pat Customer"
        assert out["booking_date"] == at(monday, "10:00").isoformat()
        assert out["cancelled_at"] is None
