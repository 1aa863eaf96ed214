from datetime import datetime
from models.db import db

FACILITY_STATUSES = ("ACTIVE", "MAINTENANCE", "CLOSED")

class Facility(db.Model):
    __tablename__ = "facilities"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    capacity = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(20), nullable=False, default="ACTIVE")
    # whole hours, 0-23; slots run from opening_hour up to closing_hour
    opening_hour = db.Column(db.Integer, nullable=False)
    closing_hour = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    activity_links = db.relationship(
        "FacilityActivity", back_populates="facility", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.CheckConstraint("closing_hour > opening_hour", name="ck_facility_hours"),
    )

    @property
    def activity_ids(self):
        return sorted(link.activity_id for link in self.activity_links)
