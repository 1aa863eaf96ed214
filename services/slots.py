"""Time-slot generation and availability queries.

The generation sweep rebuilds a facility's hourly slots for the coming days.
Slots that are held by a reservation (``is_available`` False) or referenced
by any reservation row, cancelled ones included, are left untouched; only
free, unreferenced slots from the start of today onwards are replaced.
"""
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy import select

from models import db
from models.facility import Facility
from models.reservation import ACTIVE_STATUSES, Reservation
from models.time_slot import TimeSlot
from utils import clock
from utils.errors import ValidationFailed


def compute_slot_times(opening_hour: int, closing_hour: int, first_day: date, days: int,
                       duration_minutes: int = 60) -> List[Tuple[datetime, datetime]]:
    """Hour-aligned (start, end) pairs from opening to closing hour for each day."""
    step = timedelta(minutes=duration_minutes)
    out = []
    for offset in range(days):
        day = first_day + timedelta(days=offset)
        start = datetime(day.year, day.month, day.day, opening_hour)
        close = datetime(day.year, day.month, day.day, closing_hour)
        while start + step <= close:
            out.append((start, start + step))
            start += step
    return out


def generate_slots(facility: Facility, days: Optional[int] = None, now: Optional[datetime] = None) -> dict:
    if facility.closing_hour <= facility.opening_hour:
        raise ValidationFailed("Facility closing hour must be later than opening hour")

    if days is None:
        days = current_app.config.get("SLOT_GENERATION_DAYS", 7)
    duration = current_app.config.get("SLOT_DURATION_MINUTES", 60)
    now = now or clock.now()
    window_start = clock.start_of_day(now)

    wanted = compute_slot_times(facility.opening_hour, facility.closing_hour, window_start.date(), days, duration)

    referenced = TimeSlot.id.in_(select(Reservation.slot_id))
    try:
        deleted = (
            TimeSlot.query
            .filter(
                TimeSlot.facility_id == facility.id,
                TimeSlot.start_time >= window_start,
                TimeSlot.is_available.is_(True),
                ~referenced,
            )
            .delete(synchronize_session=False)
        )

        kept = {
            (s.start_time, s.end_time)
            for s in TimeSlot.query.filter(
                TimeSlot.facility_id == facility.id,
                TimeSlot.start_time >= window_start,
            ).all()
        }

        new_rows = [
            TimeSlot(facility_id=facility.id, start_time=start, end_time=end, is_available=True)
            for start, end in wanted
            if (start, end) not in kept
        ]
        db.session.add_all(new_rows)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Generated %d slots for facility %s (deleted %d, kept %d)",
        len(new_rows), facility.id, deleted, len(kept),
    )
    return {
        "slots_generated": len(new_rows),
        "slots_deleted": deleted,
        "slots_kept": len(kept),
        "days": days,
    }


def _active_slot_ids(slot_ids):
    if not slot_ids:
        return set()
    rows = (
        db.session.query(Reservation.slot_id)
        .filter(Reservation.slot_id.in_(slot_ids), Reservation.status.in_(ACTIVE_STATUSES))
        .all()
    )
    return {r.slot_id for r in rows}


def list_slots(facility_id: int, day: Optional[date] = None):
    """All slots of a facility, each paired with its effective availability."""
    q = TimeSlot.query.filter_by(facility_id=facility_id)
    if day is not None:
        start, end = clock.day_bounds(datetime(day.year, day.month, day.day))
        q = q.filter(TimeSlot.start_time >= start, TimeSlot.start_time < end)

    slots = q.order_by(TimeSlot.start_time.asc()).all()
    held = _active_slot_ids([s.id for s in slots])
    return [(s, s.is_available and s.id not in held) for s in slots]


def available_slots(facility_id: int, day: date, now: Optional[datetime] = None):
    now = now or clock.now()
    start, end = clock.day_bounds(datetime(day.year, day.month, day.day))

    q = TimeSlot.query.filter(
        TimeSlot.facility_id == facility_id,
        TimeSlot.is_available.is_(True),
        TimeSlot.start_time >= start,
        TimeSlot.start_time < end,
    )
    if day == now.date():
        q = q.filter(TimeSlot.start_time > now)
    return q.order_by(TimeSlot.start_time.asc()).all()


def facility_availability(day: date):
    """Free/total slot counts for every active facility on the given day."""
    start, end = clock.day_bounds(datetime(day.year, day.month, day.day))
    out = []
    for facility in Facility.query.filter_by(status="ACTIVE").order_by(Facility.name.asc()).all():
        slots = TimeSlot.query.filter(
            TimeSlot.facility_id == facility.id,
            TimeSlot.start_time >= start,
            TimeSlot.start_time < end,
        ).all()
        free = sum(1 for s in slots if s.is_available)
        if not slots:
            summary = "No time slots"
        else:
            summary = f"{free}/{len(slots)} slots available"
        out.append({
            "facility_id": facility.id,
            "facility_name": facility.name,
            "total_slots": len(slots),
            "available_slots": free,
            "summary": summary,
        })
    return out
