from flask import Blueprint, jsonify, g, request

from models.reservation import Reservation
from schemas import CancelRequest, ManualReservationCreate, ReservationCreate, ReservationUpdate
from security.rbac import STAFF_ROLES, is_staff, login_required, require_roles
from services import reservations as svc
from services.settings import load_policy
from utils.audit import log_event
from utils.errors import SlotUnavailable
from utils.serializers import reservation_json
from utils.validation import parse_body

reservations_bp = Blueprint("reservations", __name__, url_prefix="/api/reservations")


@reservations_bp.get("")
@login_required
def list_reservations():
    user_id = g.user.id
    if is_staff(g.user):
        # staff: ?all=true for everyone, ?userId= for one customer
        if request.args.get("all") == "true":
            user_id = None
        else:
            user_id = request.args.get("userId", type=int) or g.user.id

    q = Reservation.query
    if user_id is not None:
        q = q.filter_by(user_id=user_id)
    rows = q.order_by(Reservation.created_at.desc()).all()
    return jsonify([reservation_json(r) for r in rows]), 200


@reservations_bp.post("")
@login_required
def create_reservation():
    data = parse_body(ReservationCreate)
    try:
        reservation = svc.create_reservation(
            g.user, data.facility_id, data.activity_id, data.slot_id, policy=load_policy(),
        )
    except SlotUnavailable:
        log_event("RESERVATION_FAIL_SLOT_TAKEN", user_id=g.user.id, entity="time_slot", entity_id=data.slot_id)
        raise

    log_event(
        "RESERVATION_CREATE", user_id=g.user.id, entity="reservation", entity_id=reservation.id,
        metadata={"slot_id": data.slot_id, "activity_id": data.activity_id},
    )
    return jsonify(reservation_json(reservation)), 200


@reservations_bp.patch("/<int:reservation_id>")
@login_required
def update_reservation(reservation_id: int):
    data = parse_body(ReservationUpdate)
    try:
        reservation = svc.update_reservation(
            reservation_id,
            g.user,
            status=data.status,
            slot_id=data.slot_id,
            cancellation_reason=data.cancellation_reason,
            internal_notes=data.internal_notes,
            policy=load_policy(),
        )
    except SlotUnavailable:
        log_event("RESERVATION_FAIL_SLOT_TAKEN", user_id=g.user.id, entity="reservation", entity_id=reservation_id)
        raise

    log_event(
        "RESERVATION_UPDATE", user_id=g.user.id, entity="reservation", entity_id=reservation.id,
        metadata=data.model_dump(exclude_none=True),
    )
    return jsonify(reservation_json(reservation)), 200


@reservations_bp.post("/<int:reservation_id>/cancel")
@login_required
def cancel_reservation(reservation_id: int):
    data = parse_body(CancelRequest)
    reservation = svc.cancel_reservation(
        reservation_id, g.user, data.cancellation_reason, policy=load_policy(),
    )
    log_event(
        "RESERVATION_CANCEL", user_id=g.user.id, entity="reservation", entity_id=reservation.id,
        metadata={"reason": data.cancellation_reason},
    )
    return jsonify(reservation_json(reservation)), 200


@reservations_bp.delete("/<int:reservation_id>")
@login_required
def delete_reservation(reservation_id: int):
    svc.delete_reservation(reservation_id, g.user)
    log_event("RESERVATION_DELETE", user_id=g.user.id, entity="reservation", entity_id=reservation_id)
    return jsonify(success=True), 200


# ---------- STAFF: book on behalf of a customer ----------
@reservations_bp.post("/manual")
@require_roles(*STAFF_ROLES)
def create_manual_reservation():
    data = parse_body(ManualReservationCreate)
    try:
        reservation = svc.create_manual_reservation(g.user, data)
    except SlotUnavailable:
        log_event("RESERVATION_FAIL_SLOT_TAKEN", user_id=g.user.id, entity="time_slot", entity_id=data.slot_id)
        raise

    log_event(
        "RESERVATION_MANUAL_CREATE", user_id=g.user.id, entity="reservation", entity_id=reservation.id,
        metadata={"customer_id": reservation.user_id, "slot_id": data.slot_id},
    )
    return jsonify(reservation_json(reservation)), 201
