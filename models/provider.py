from datetime import datetime
from models.db import db

EMAIL_SERVICE_TYPES = ("smtp", "gmail", "sendgrid")

class Provider(db.Model):
    __tablename__ = "providers"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    business_name = db.Column(db.String(160), nullable=False)
    business_slug = db.Column(db.String(180), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(30), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    # Outbound email settings; the password is only ever stored encrypted
    email_service_type = db.Column(db.String(20), nullable=True)  # smtp, gmail, sendgrid
    email_smtp_host = db.Column(db.String(255), nullable=True)
    email_smtp_port = db.Column(db.Integer, nullable=True)
    email_smtp_secure = db.Column(db.Boolean, default=False, nullable=False)
    email_smtp_user = db.Column(db.String(255), nullable=True)
    email_smtp_password_encrypted = db.Column(db.Text, nullable=True)
    email_from_address = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="provider")
