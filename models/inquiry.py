from datetime import datetime
from models.db import db

INQUIRY_STATUSES = ("new", "contacted", "followed_up")

class CustomerInquiry(db.Model):
    __tablename__ = "customer_inquiries"

    id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(120), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(30), nullable=True)
    inquiry_message = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="new")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    provider = db.relationship("Provider")
