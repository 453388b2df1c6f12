from datetime import datetime
from models.db import db

class EmailNotification(db.Model):
    __tablename__ = "email_notifications"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True, index=True)

    recipient_email = db.Column(db.String(255), nullable=False)
    recipient_type = db.Column(db.String(20), nullable=False)  # customer, provider
    notification_type = db.Column(db.String(40), nullable=False)  # booking_confirmation, new_booking, ...
    subject = db.Column(db.String(255), nullable=True)
    body = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="logged")  # sent, logged, failed
    channel = db.Column(db.String(20), nullable=True)  # provider_smtp, platform_smtp, resend
    error = db.Column(db.String(255), nullable=True)

    sent_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
