from flask import Blueprint, jsonify

from routes.activities import activities_bp
from routes.auth import auth_bp, profile_bp
from routes.facilities import facilities_bp
from routes.reports import reports_bp
from routes.reservations import reservations_bp
from routes.settings import settings_bp
from routes.shifts import shifts_bp
from routes.time_slots import time_slots_bp
from routes.users import users_bp

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(status="ok"), 200


ALL_BLUEPRINTS = (
    health_bp,
    auth_bp,
    profile_bp,
    users_bp,
    facilities_bp,
    activities_bp,
    time_slots_bp,
    reservations_bp,
    shifts_bp,
    settings_bp,
    reports_bp,
)
