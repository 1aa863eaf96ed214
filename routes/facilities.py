from datetime import date

from flask import Blueprint, jsonify, g, request
from sqlalchemy.exc import IntegrityError

from models import db
from models.activity import Activity, FacilityActivity
from models.facility import Facility
from models.reservation import Reservation
from models.time_slot import TimeSlot
from schemas import FacilityCreate, FacilityUpdate
from security.rbac import require_roles
from services.slots import facility_availability, generate_slots
from utils import clock
from utils.audit import log_event
from utils.errors import Conflict, NotFound, ValidationFailed
from utils.serializers import facility_json
from utils.validation import parse_body

facilities_bp = Blueprint("facilities", __name__, url_prefix="/api/facilities")


def _get_facility(facility_id: int) -> Facility:
    facility = db.session.get(Facility, facility_id)
    if facility is None:
        raise NotFound("Facility not found")
    return facility


def _set_activities(facility: Facility, activity_ids):
    ids = set(activity_ids)
    found = Activity.query.filter(Activity.id.in_(ids)).count() if ids else 0
    if found != len(ids):
        raise ValidationFailed("One or more activities do not exist")

    for link in list(facility.activity_links):
        if link.activity_id not in ids:
            facility.activity_links.remove(link)
    for a_id in sorted(ids - set(facility.activity_ids)):
        facility.activity_links.append(FacilityActivity(activity_id=a_id))


@facilities_bp.get("")
def list_facilities():
    rows = Facility.query.order_by(Facility.name.asc()).all()
    return jsonify([facility_json(f) for f in rows]), 200


@facilities_bp.get("/availability")
def availability():
    # unparseable or missing date falls back to today
    try:
        day = date.fromisoformat(request.args.get("date") or "")
    except ValueError:
        day = clock.now().date()
    return jsonify(date=day.isoformat(), facilities=facility_availability(day)), 200


@facilities_bp.get("/<int:facility_id>")
def get_facility(facility_id: int):
    return jsonify(facility_json(_get_facility(facility_id))), 200


@facilities_bp.post("")
@require_roles("ADMIN")
def create_facility():
    data = parse_body(FacilityCreate)

    facility = Facility(
        name=data.name,
        description=data.description,
        capacity=data.capacity,
        status=data.status,
        opening_hour=data.opening_hour,
        closing_hour=data.closing_hour,
    )
    if data.activity_ids:
        _set_activities(facility, data.activity_ids)

    db.session.add(facility)
    db.session.commit()

    log_event("FACILITY_CREATE", user_id=g.user.id, entity="facility", entity_id=facility.id)
    return jsonify(facility_json(facility)), 201


@facilities_bp.put("/<int:facility_id>")
@require_roles("ADMIN")
def update_facility(facility_id: int):
    facility = _get_facility(facility_id)
    data = parse_body(FacilityUpdate)
    changes = data.model_dump(exclude_unset=True, exclude={"activity_ids"})

    opening = changes.get("opening_hour", facility.opening_hour)
    closing = changes.get("closing_hour", facility.closing_hour)
    if closing <= opening:
        raise ValidationFailed("closing_hour must be later than opening_hour")

    for key, value in changes.items():
        if value is not None:
            setattr(facility, key, value)
    if data.activity_ids is not None:
        _set_activities(facility, data.activity_ids)
    db.session.commit()

    log_event(
        "FACILITY_UPDATE", user_id=g.user.id, entity="facility", entity_id=facility.id,
        metadata=data.model_dump(exclude_unset=True),
    )
    return jsonify(facility_json(facility)), 200


@facilities_bp.delete("/<int:facility_id>")
@require_roles("ADMIN")
def delete_facility(facility_id: int):
    facility = _get_facility(facility_id)

    in_use = (
        Reservation.query
        .join(TimeSlot, Reservation.slot_id == TimeSlot.id)
        .filter(TimeSlot.facility_id == facility.id)
        .count()
    )
    if in_use:
        raise Conflict("Facility has reservations and cannot be deleted")

    try:
        TimeSlot.query.filter_by(facility_id=facility.id).delete(synchronize_session=False)
        db.session.delete(facility)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Facility has reservations and cannot be deleted")

    log_event("FACILITY_DELETE", user_id=g.user.id, entity="facility", entity_id=facility_id)
    return jsonify(success=True), 200


@facilities_bp.post("/<int:facility_id>/generate-slots")
@require_roles("ADMIN")
def generate_facility_slots(facility_id: int):
    facility = _get_facility(facility_id)
    if facility.status != "ACTIVE":
        raise ValidationFailed("Time slots can only be generated for active facilities")

    result = generate_slots(facility)
    log_event(
        "SLOTS_GENERATE", user_id=g.user.id, entity="facility", entity_id=facility.id, metadata=result,
    )
    return jsonify(result), 200
