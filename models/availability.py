from datetime import datetime
from models.db import db

class WeeklyAvailabilitySlot(db.Model):
    __tablename__ = "availability"

    id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=False, index=True)

    day_of_week = db.Column(db.Integer, nullable=False)  # 0=Sunday .. 6=Saturday
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index("ix_availability_provider_day", "provider_id", "day_of_week"),
    )

class BlockedDate(db.Model):
    __tablename__ = "blocked_dates"

    id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=False, index=True)

    blocked_date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("provider_id", "blocked_date", name="uq_blocked_date_per_provider"),
    )
