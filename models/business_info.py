from datetime import datetime
from models.db import db

class BusinessInfo(db.Model):
    """Free-text details a provider wants customers (and the chat assistant) to know."""
    __tablename__ = "business_info"

    id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=False, unique=True, index=True)

    business_hours = db.Column(db.Text, nullable=True)  # shown when no weekly schedule is set
    location_details = db.Column(db.Text, nullable=True)
    policies = db.Column(db.Text, nullable=True)
    other_info = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
