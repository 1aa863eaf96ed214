from dataclasses import dataclass, asdict
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.system_setting import SETTINGS_ROW_ID, SystemSetting


@dataclass(frozen=True)
class BookingPolicy:
    """Snapshot of the system settings row, loaded once per request."""

    id: int
    default_opening_hour: int
    default_closing_hour: int
    max_booking_lead_days: int
    cancellation_deadline_hours: int
    max_active_reservations_per_user: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: SystemSetting) -> "BookingPolicy":
        return cls(
            id=row.id,
            default_opening_hour=row.default_opening_hour,
            default_closing_hour=row.default_closing_hour,
            max_booking_lead_days=row.max_booking_lead_days,
            cancellation_deadline_hours=row.cancellation_deadline_hours,
            max_active_reservations_per_user=row.max_active_reservations_per_user,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data

    def public_dict(self) -> dict:
        return {
            "max_booking_lead_days": self.max_booking_lead_days,
            "cancellation_deadline_hours": self.cancellation_deadline_hours,
        }


def _existing_row():
    return db.session.get(SystemSetting, SETTINGS_ROW_ID)


def _settings_row() -> SystemSetting:
    row = _existing_row()
    if row:
        return row

    cfg = current_app.config
    row = SystemSetting(
        id=SETTINGS_ROW_ID,
        default_opening_hour=cfg.get("DEFAULT_OPENING_HOUR", 8),
        default_closing_hour=cfg.get("DEFAULT_CLOSING_HOUR", 20),
        max_booking_lead_days=cfg.get("DEFAULT_MAX_BOOKING_LEAD_DAYS", 14),
        cancellation_deadline_hours=cfg.get("DEFAULT_CANCELLATION_DEADLINE_HOURS", 24),
        max_active_reservations_per_user=cfg.get("DEFAULT_MAX_ACTIVE_RESERVATIONS_PER_USER", 3),
    )
    db.session.add(row)
    try:
        db.session.commit()
    except IntegrityError:
        # another request created the row first
        db.session.rollback()
        row = _existing_row()
        if row is None:
            raise RuntimeError("Failed to retrieve system settings after creation attempt")
    return row


def load_policy() -> BookingPolicy:
    return BookingPolicy.from_row(_settings_row())


def update_policy(values: dict) -> BookingPolicy:
    row = _settings_row()
    for key, value in values.items():
        setattr(row, key, value)
    db.session.commit()
    current_app.logger.info("System settings updated: %s", values)
    return BookingPolicy.from_row(row)
