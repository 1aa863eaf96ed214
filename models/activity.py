from datetime import datetime
from models.db import db

class Activity(db.Model):
    __tablename__ = "activities"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    duration_minutes = db.Column(db.Integer, nullable=False, default=60)
    price = db.Column(db.Integer, nullable=False, default=0)  # store smallest unit
    max_participants = db.Column(db.Integer, nullable=False, default=1)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    facility_links = db.relationship(
        "FacilityActivity", back_populates="activity", cascade="all, delete-orphan"
    )

    @property
    def facility_ids(self):
        return sorted(link.facility_id for link in self.facility_links)

class FacilityActivity(db.Model):
    __tablename__ = "facility_activities"

    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), primary_key=True)
    activity_id = db.Column(db.Integer, db.ForeignKey("activities.id"), primary_key=True)

    facility = db.relationship("Facility", back_populates="activity_links")
    activity = db.relationship("Activity", back_populates="facility_links")
