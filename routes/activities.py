from flask import Blueprint, jsonify, g, request
from sqlalchemy.exc import IntegrityError

from models import db
from models.activity import Activity, FacilityActivity
from models.facility import Facility
from schemas import ActivityCreate, ActivityUpdate
from security.rbac import require_roles
from utils.audit import log_event
from utils.errors import Conflict, NotFound, ValidationFailed
from utils.serializers import activity_json
from utils.validation import parse_body

activities_bp = Blueprint("activities", __name__, url_prefix="/api/activities")


def _get_activity(activity_id: int) -> Activity:
    activity = db.session.get(Activity, activity_id)
    if activity is None:
        raise NotFound("Activity not found")
    return activity


def _set_facilities(activity: Activity, facility_ids):
    ids = set(facility_ids)
    found = Facility.query.filter(Facility.id.in_(ids)).count() if ids else 0
    if found != len(ids):
        raise ValidationFailed("One or more facilities do not exist")

    for link in list(activity.facility_links):
        if link.facility_id not in ids:
            activity.facility_links.remove(link)
    for f_id in sorted(ids - set(activity.facility_ids)):
        activity.facility_links.append(FacilityActivity(facility_id=f_id))


def _name_taken(name: str, exclude_id=None) -> bool:
    q = Activity.query.filter(db.func.lower(Activity.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Activity.id != exclude_id)
    return q.first() is not None


def _commit_unique():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("An activity with this name already exists")


@activities_bp.get("")
def list_activities():
    facility_id = request.args.get("facilityId", type=int)
    if facility_id:
        rows = (
            Activity.query
            .join(FacilityActivity, FacilityActivity.activity_id == Activity.id)
            .filter(FacilityActivity.facility_id == facility_id, Activity.is_active.is_(True))
            .order_by(Activity.name.asc())
            .all()
        )
    else:
        rows = Activity.query.filter_by(is_active=True).order_by(Activity.name.asc()).all()
    return jsonify([activity_json(a) for a in rows]), 200


@activities_bp.get("/<int:activity_id>")
def get_activity(activity_id: int):
    return jsonify(activity_json(_get_activity(activity_id))), 200


@activities_bp.post("")
@require_roles("ADMIN")
def create_activity():
    data = parse_body(ActivityCreate)
    if _name_taken(data.name):
        raise Conflict("An activity with this name already exists")

    activity = Activity(
        name=data.name,
        description=data.description,
        duration_minutes=data.duration_minutes,
        price=data.price,
        max_participants=data.max_participants,
        is_active=data.is_active,
    )
    if data.facility_ids:
        _set_facilities(activity, data.facility_ids)

    db.session.add(activity)
    _commit_unique()

    log_event("ACTIVITY_CREATE", user_id=g.user.id, entity="activity", entity_id=activity.id)
    return jsonify(activity_json(activity)), 201


@activities_bp.put("/<int:activity_id>")
@require_roles("ADMIN")
def update_activity(activity_id: int):
    activity = _get_activity(activity_id)
    data = parse_body(ActivityUpdate)

    if data.name and _name_taken(data.name, exclude_id=activity.id):
        raise Conflict("An activity with this name already exists")

    for key, value in data.model_dump(exclude_unset=True, exclude={"facility_ids"}).items():
        if value is not None:
            setattr(activity, key, value)
    if data.facility_ids is not None:
        _set_facilities(activity, data.facility_ids)
    _commit_unique()

    log_event("ACTIVITY_UPDATE", user_id=g.user.id, entity="activity", entity_id=activity.id)
    return jsonify(activity_json(activity)), 200


@activities_bp.delete("/<int:activity_id>")
@require_roles("ADMIN")
def delete_activity(activity_id: int):
    # soft delete: existing reservations keep pointing at the row
    activity = _get_activity(activity_id)
    activity.is_active = False
    db.session.commit()

    log_event("ACTIVITY_DEACTIVATE", user_id=g.user.id, entity="activity", entity_id=activity.id)
    return jsonify(success=True), 200
