from flask import Blueprint, jsonify, g

from models import db
from models.employee import Employee, EmployeeShift
from models.user import ROLE_ADMIN, ROLE_EMPLOYEE, Role, User
from schemas import ShiftCreate, ShiftUpdate
from security.rbac import has_role, require_roles
from utils.audit import log_event
from utils.errors import NotFound, ValidationFailed
from utils.serializers import shift_json, user_json
from utils.validation import parse_body

shifts_bp = Blueprint("shifts", __name__, url_prefix="/api")


def _get_shift(shift_id: int) -> EmployeeShift:
    shift = db.session.get(EmployeeShift, shift_id)
    if shift is None:
        raise NotFound("Shift not found")
    return shift


@shifts_bp.get("/shifts")
@require_roles(ROLE_EMPLOYEE)
def list_shifts():
    q = EmployeeShift.query
    if not has_role(ROLE_ADMIN):
        employee = g.user.employee
        if employee is None:
            return jsonify([]), 200
        q = q.filter_by(employee_id=employee.id)

    rows = q.order_by(EmployeeShift.start_time.asc()).all()
    return jsonify([shift_json(s) for s in rows]), 200


@shifts_bp.post("/shifts")
@require_roles(ROLE_ADMIN)
def create_shift():
    data = parse_body(ShiftCreate)

    # employee_id in the payload is the employee's user id
    employee = Employee.query.filter_by(user_id=data.employee_id).first()
    if employee is None:
        raise NotFound("Employee not found")

    shift = EmployeeShift(
        employee_id=employee.id,
        start_time=data.start_time,
        end_time=data.end_time,
        shift_type=data.shift_type,
    )
    db.session.add(shift)
    db.session.commit()

    log_event("SHIFT_CREATE", user_id=g.user.id, entity="shift", entity_id=shift.id)
    return jsonify(shift_json(shift)), 201


@shifts_bp.put("/shifts/<int:shift_id>")
@require_roles(ROLE_ADMIN)
def update_shift(shift_id: int):
    shift = _get_shift(shift_id)
    data = parse_body(ShiftUpdate)

    start = data.start_time or shift.start_time
    end = data.end_time or shift.end_time
    if end <= start:
        raise ValidationFailed("end_time must be after start_time")

    shift.start_time = start
    shift.end_time = end
    if data.shift_type:
        shift.shift_type = data.shift_type
    db.session.commit()

    log_event("SHIFT_UPDATE", user_id=g.user.id, entity="shift", entity_id=shift.id)
    return jsonify(shift_json(shift)), 200


@shifts_bp.delete("/shifts/<int:shift_id>")
@require_roles(ROLE_ADMIN)
def delete_shift(shift_id: int):
    shift = _get_shift(shift_id)
    db.session.delete(shift)
    db.session.commit()

    log_event("SHIFT_DELETE", user_id=g.user.id, entity="shift", entity_id=shift_id)
    return jsonify(success=True), 200


@shifts_bp.get("/employees")
@require_roles(ROLE_ADMIN)
def list_employees():
    rows = (
        User.query
        .join(Role, User.role_id == Role.id)
        .filter(Role.name == ROLE_EMPLOYEE, User.is_active.is_(True))
        .order_by(User.last_name.asc(), User.first_name.asc())
        .all()
    )
    out = []
    for u in rows:
        item = user_json(u)
        item["position"] = u.employee.position if u.employee else None
        out.append(item)
    return jsonify(out), 200
