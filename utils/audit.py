import json
from flask import current_app, has_request_context, request
from models import db
from models.audit_log import AuditLog

def _request_fields() -> dict:
    # CLI commands and services called outside a request log without these
    if not has_request_context():
        return {}
    return {
        "method": request.method,
        "path": request.path[:255],
        "ip": request.headers.get("X-Forwarded-For", request.remote_addr),
        "user_agent": (request.headers.get("User-Agent") or "")[:255] or None,
    }

def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None) -> AuditLog:
    """Persist one audit row (own commit) and mirror it to the app logger."""
    row = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
        **_request_fields(),
    )
    db.session.add(row)
    db.session.commit()

    current_app.logger.info("audit %s user=%s %s=%s", action, user_id, entity or "-", entity_id or "-")
    return row
