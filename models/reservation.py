from datetime import datetime
from models.db import db

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)

class Reservation(db.Model):
    __tablename__ = "reservations"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    activity_id = db.Column(db.Integer, db.ForeignKey("activities.id"), nullable=False, index=True)
    slot_id = db.Column(db.Integer, db.ForeignKey("time_slots.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    total_price = db.Column(db.Integer, nullable=False, default=0)  # price snapshot at booking

    cancellation_reason = db.Column(db.String(255), nullable=True)
    internal_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    user = db.relationship("User")
    activity = db.relationship("Activity")
    time_slot = db.relationship("TimeSlot")

    __table_args__ = (
        # Only one non-cancelled reservation may hold a slot
        db.Index(
            "uq_reservation_active_slot",
            "slot_id",
            unique=True,
            sqlite_where=db.text("status != 'cancelled'"),
            postgresql_where=db.text("status != 'cancelled'"),
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
