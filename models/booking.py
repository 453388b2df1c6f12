from datetime import datetime
from models.db import db

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    # Guest contact (set when booked without an account)
    customer_name = db.Column(db.String(120), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(30), nullable=True)

    booking_date = db.Column(db.DateTime, nullable=False, index=True)
    # booking_date truncated to the minute; collisions are detected at this granularity
    slot_key = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(20), nullable=False, default="pending")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    service = db.relationship("Service")
    provider = db.relationship("Provider")
    customer = db.relationship("User")

    __table_args__ = (
        # Only one live booking per provider per minute (cancelled rows are ignored)
        db.Index(
            "uq_booking_provider_slot_active",
            "provider_id",
            "slot_key",
            unique=True,
            postgresql_where=db.text("status != 'cancelled'"),
            sqlite_where=db.text("status != 'cancelled'"),
        ),
    )

    @property
    def contact_email(self):
        if self.customer is not None:
            return self.customer.email
        return self.customer_email

    @property
    def contact_name(self):
        if self.customer is not None:
            return self.customer.full_name or self.customer.email
        return self.customer_name
