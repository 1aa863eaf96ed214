"""Reservation lifecycle: booking, rebooking, cancellation and staff bookings.

Every mutation runs as one database transaction. A slot is claimed with a
conditional ``UPDATE ... WHERE is_available`` so two requests racing for the
same slot cannot both succeed; the loser gets :class:`SlotUnavailable`.
The partial unique index on ``reservations.slot_id`` backs this up at the
schema level.
"""
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from models import db
from models.activity import Activity, FacilityActivity
from models.facility import Facility
from models.reservation import (
    ACTIVE_STATUSES,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    Reservation,
)
from models.time_slot import TimeSlot
from models.user import ROLE_USER, Role, User
from security.rbac import is_staff
from services.settings import BookingPolicy, load_policy
from utils import clock
from utils.errors import (
    Conflict,
    NotFound,
    PermissionDenied,
    SlotUnavailable,
    ValidationFailed,
)

ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
    STATUS_CONFIRMED: {STATUS_CANCELLED},
    STATUS_CANCELLED: {STATUS_CONFIRMED, STATUS_PENDING},
}


# ---------- rule checks ----------

def count_active_reservations(user_id: int, now: datetime) -> int:
    return (
        Reservation.query
        .join(TimeSlot, Reservation.slot_id == TimeSlot.id)
        .filter(
            Reservation.user_id == user_id,
            Reservation.status.in_(ACTIVE_STATUSES),
            TimeSlot.start_time > now,
        )
        .count()
    )


def check_lead_time(slot: TimeSlot, policy: BookingPolicy, now: datetime):
    last_day = now.date() + timedelta(days=policy.max_booking_lead_days)
    if slot.start_time.date() > last_day:
        raise ValidationFailed(
            f"Reservations can be made at most {policy.max_booking_lead_days} days in advance"
        )


def check_cancellation_deadline(slot: TimeSlot, policy: BookingPolicy, now: datetime):
    remaining = (slot.start_time - now).total_seconds()
    if remaining < policy.cancellation_deadline_hours * 3600:
        raise ValidationFailed(
            "Cancellation deadline has passed: reservations can be cancelled "
            f"at least {policy.cancellation_deadline_hours} hours before start"
        )


def _check_schedulable(slot: TimeSlot, policy: BookingPolicy, now: datetime):
    if slot.start_time <= now:
        raise ValidationFailed("Cannot book past or already started time slots")
    check_lead_time(slot, policy, now)


def _check_bookable(slot: TimeSlot, policy: BookingPolicy, now: datetime):
    if not slot.is_available:
        raise SlotUnavailable("Selected time slot is not available")
    _check_schedulable(slot, policy, now)


def _get_owned(reservation_id: int, actor: User) -> Reservation:
    reservation = db.session.get(Reservation, reservation_id)
    if reservation is None or (not is_staff(actor) and reservation.user_id != actor.id):
        raise NotFound("Reservation not found")
    return reservation


# ---------- slot flag transitions ----------

def _claim_slot(slot_id: int, message: Optional[str] = None):
    """available -> unavailable, only if nobody got there first."""
    result = db.session.execute(
        update(TimeSlot)
        .where(TimeSlot.id == slot_id, TimeSlot.is_available.is_(True))
        .values(is_available=False)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise SlotUnavailable(message) if message else SlotUnavailable()


def _release_slot(slot_id: int):
    db.session.execute(
        update(TimeSlot)
        .where(TimeSlot.id == slot_id)
        .values(is_available=True)
        .execution_options(synchronize_session=False)
    )


def _new_reservation(**values) -> Reservation:
    reservation = Reservation(**values)
    db.session.add(reservation)
    db.session.flush()
    return reservation


# ---------- operations ----------

def create_reservation(user: User, facility_id: int, activity_id: int, slot_id: int,
                       policy: Optional[BookingPolicy] = None,
                       now: Optional[datetime] = None) -> Reservation:
    policy = policy or load_policy()
    now = now or clock.now()

    active = count_active_reservations(user.id, now)
    if active >= policy.max_active_reservations_per_user:
        raise ValidationFailed(
            "Maximum number of active reservations reached "
            f"({policy.max_active_reservations_per_user})"
        )

    facility = db.session.get(Facility, facility_id)
    if facility is None:
        raise NotFound("Facility not found")

    slot = db.session.get(TimeSlot, slot_id)
    if slot is None:
        raise NotFound("Time slot not found")
    if slot.facility_id != facility.id:
        raise ValidationFailed("Time slot does not belong to the selected facility")
    _check_bookable(slot, policy, now)

    activity = db.session.get(Activity, activity_id)
    if activity is None:
        raise NotFound("Activity not found")
    if not activity.is_active:
        raise ValidationFailed("Activity is not active")

    link = FacilityActivity.query.filter_by(facility_id=facility.id, activity_id=activity.id).first()
    if link is None:
        raise ValidationFailed("This activity is not available at the selected facility")

    try:
        _claim_slot(slot.id)
        reservation = _new_reservation(
            user_id=user.id,
            activity_id=activity.id,
            slot_id=slot.id,
            status=STATUS_PENDING,
            total_price=activity.price,
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SlotUnavailable()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Reservation %s created for slot %s by user %s", reservation.id, slot.id, user.id)
    return reservation


def update_reservation(reservation_id: int, actor: User, status: Optional[str] = None,
                       slot_id: Optional[int] = None, cancellation_reason: Optional[str] = None,
                       internal_notes: Optional[str] = None,
                       policy: Optional[BookingPolicy] = None,
                       now: Optional[datetime] = None) -> Reservation:
    policy = policy or load_policy()
    now = now or clock.now()

    reservation = _get_owned(reservation_id, actor)
    current = reservation.status
    target = status or current

    if not is_staff(actor):
        if internal_notes is not None:
            raise PermissionDenied("Only staff can edit internal notes")
        if target != current and target != STATUS_CANCELLED:
            raise PermissionDenied("Only staff can change the reservation status")

    if target != current and target not in ALLOWED_TRANSITIONS[current]:
        raise ValidationFailed(f"Cannot change reservation status from {current} to {target}")

    cancelling = current != STATUS_CANCELLED and target == STATUS_CANCELLED
    reactivating = current == STATUS_CANCELLED and target != STATUS_CANCELLED
    moving = slot_id is not None and slot_id != reservation.slot_id

    if moving and target == STATUS_CANCELLED:
        raise ValidationFailed("A cancelled reservation cannot be moved to another time slot")

    old_slot = reservation.time_slot
    if cancelling:
        check_cancellation_deadline(old_slot, policy, now)
    elif moving and not reactivating and not is_staff(actor):
        # moving off a held slot frees it like a cancellation
        check_cancellation_deadline(old_slot, policy, now)

    if reactivating and not moving:
        _check_schedulable(old_slot, policy, now)

    new_slot = None
    if moving:
        new_slot = db.session.get(TimeSlot, slot_id)
        if new_slot is None:
            raise NotFound("Time slot not found")
        if new_slot.facility_id != old_slot.facility_id:
            raise ValidationFailed("New time slot must belong to the same facility")
        _check_bookable(new_slot, policy, now)

    try:
        if cancelling:
            db.session.refresh(reservation)
            db.session.refresh(old_slot)
            if reservation.status == STATUS_CANCELLED:
                raise Conflict("Reservation is already cancelled")
            check_cancellation_deadline(old_slot, policy, now)
            _release_slot(old_slot.id)
            reservation.cancellation_reason = cancellation_reason
        elif reactivating:
            claim_id = new_slot.id if moving else reservation.slot_id
            _claim_slot(claim_id, None if moving else "Original time slot is no longer available")
            reservation.slot_id = claim_id
            reservation.cancellation_reason = None
        elif moving:
            _claim_slot(new_slot.id)
            _release_slot(old_slot.id)
            reservation.slot_id = new_slot.id

        reservation.status = target
        if internal_notes is not None:
            reservation.internal_notes = internal_notes
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SlotUnavailable()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Reservation %s updated by user %s: %s -> %s%s",
        reservation.id, actor.id, current, target, f" (slot {slot_id})" if moving else "",
    )
    return reservation


def cancel_reservation(reservation_id: int, actor: User, reason: str,
                       policy: Optional[BookingPolicy] = None,
                       now: Optional[datetime] = None) -> Reservation:
    reservation = _get_owned(reservation_id, actor)
    if reservation.status == STATUS_CANCELLED:
        raise Conflict("Reservation is already cancelled")
    return update_reservation(
        reservation_id, actor, status=STATUS_CANCELLED, cancellation_reason=reason,
        policy=policy, now=now,
    )


def delete_reservation(reservation_id: int, actor: User,
                       policy: Optional[BookingPolicy] = None,
                       now: Optional[datetime] = None):
    reservation = _get_owned(reservation_id, actor)
    if reservation.is_active and not is_staff(actor):
        check_cancellation_deadline(reservation.time_slot, policy or load_policy(), now or clock.now())

    try:
        # a cancelled reservation no longer holds its slot
        if reservation.is_active:
            _release_slot(reservation.slot_id)
        db.session.delete(reservation)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def _resolve_customer(data) -> User:
    if data.user_id is not None:
        user = db.session.get(User, data.user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    email = data.email.strip().lower()
    user = User.query.filter(func.lower(User.email) == email).first()
    if user is not None:
        return user

    if not data.first_name or not data.last_name:
        raise ValidationFailed("first_name and last_name are required to create a new customer")

    role = Role.query.filter_by(name=ROLE_USER).first()
    if role is None:
        raise RuntimeError("Default USER role not found")

    user = User(
        username=email,
        email=email,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        role_id=role.id,
        is_active=True,
    )
    db.session.add(user)
    try:
        db.session.flush()
    except IntegrityError:
        raise Conflict("A user with this email or username already exists")
    return user


def create_manual_reservation(actor: User, data) -> Reservation:
    """Staff booking on behalf of a customer; the active-reservation limit does not apply."""
    try:
        user = _resolve_customer(data)
        if not user.is_active:
            raise ValidationFailed("User account is disabled")

        slot = db.session.get(TimeSlot, data.slot_id)
        if slot is None:
            raise NotFound("Time slot not found")
        if not slot.is_available:
            raise SlotUnavailable()

        activity = db.session.get(Activity, data.activity_id)
        if activity is None:
            raise NotFound("Activity not found")

        _claim_slot(slot.id)
        reservation = _new_reservation(
            user_id=user.id,
            activity_id=activity.id,
            slot_id=slot.id,
            status=data.status or STATUS_CONFIRMED,
            total_price=activity.price,
            internal_notes=data.internal_notes,
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SlotUnavailable()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Manual reservation %s created by staff %s for user %s", reservation.id, actor.id, user.id
    )
    return reservation
