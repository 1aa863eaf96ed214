from datetime import date

from flask import Blueprint, jsonify, request

from schemas import AvailableSlotsQuery
from services.slots import available_slots, list_slots
from utils.errors import ValidationFailed
from utils.serializers import slot_json
from utils.validation import parse_data

time_slots_bp = Blueprint("time_slots", __name__, url_prefix="/api")


@time_slots_bp.get("/time-slots")
def list_time_slots():
    facility_id = request.args.get("facilityId", type=int)
    if not facility_id:
        raise ValidationFailed("facilityId is required")

    day = None
    if request.args.get("date"):
        try:
            day = date.fromisoformat(request.args["date"])
        except ValueError:
            raise ValidationFailed("Invalid date. Use YYYY-MM-DD")

    return jsonify([slot_json(s, available=free) for s, free in list_slots(facility_id, day)]), 200


@time_slots_bp.get("/timeslots/available")
def list_available_slots():
    query = parse_data(
        AvailableSlotsQuery, request.args.to_dict(), message="facilityId and date (YYYY-MM-DD) are required",
    )
    slots = available_slots(query.facility_id, query.day)
    return jsonify([slot_json(s) for s in slots]), 200
