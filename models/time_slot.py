from datetime import datetime
from models.db import db

class TimeSlot(db.Model):
    __tablename__ = "time_slots"

    id = db.Column(db.Integer, primary_key=True)

    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    # flipped to False while a non-cancelled reservation holds the slot
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    facility = db.relationship("Facility")

    __table_args__ = (
        # Prevent duplicate slot times for same facility
        db.UniqueConstraint("facility_id", "start_time", "end_time", name="uq_facility_timeslot"),
    )
