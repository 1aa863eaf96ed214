from flask import Blueprint, jsonify, g

from schemas import SettingsUpdate
from security.rbac import login_required, require_roles
from services.settings import load_policy, update_policy
from utils.audit import log_event
from utils.validation import parse_body

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_roles("ADMIN")
def get_settings():
    return jsonify(load_policy().to_dict()), 200


@settings_bp.patch("")
@require_roles("ADMIN")
def patch_settings():
    data = parse_body(SettingsUpdate)
    policy = update_policy(data.model_dump())

    log_event("SETTINGS_UPDATE", user_id=g.user.id, entity="system_settings", entity_id=policy.id,
              metadata=data.model_dump())
    return jsonify(policy.to_dict()), 200


@settings_bp.get("/public")
@login_required
def public_settings():
    return jsonify(load_policy().public_dict()), 200
