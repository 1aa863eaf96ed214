from datetime import datetime
from models.db import db

# one row holds the booking policy
SETTINGS_ROW_ID = 1


class SystemSetting(db.Model):
    __tablename__ = "system_settings"
    __table_args__ = (
        db.CheckConstraint(f"id = {SETTINGS_ROW_ID}", name="ck_system_settings_singleton"),
    )

    id = db.Column(db.Integer, primary_key=True, default=SETTINGS_ROW_ID)

    default_opening_hour = db.Column(db.Integer, nullable=False, default=8)
    default_closing_hour = db.Column(db.Integer, nullable=False, default=20)
    max_booking_lead_days = db.Column(db.Integer, nullable=False, default=14)
    cancellation_deadline_hours = db.Column(db.Integer, nullable=False, default=24)
    max_active_reservations_per_user = db.Column(db.Integer, nullable=False, default=3)

    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)
