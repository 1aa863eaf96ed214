from datetime import datetime
from models.db import db

class AuditLog(db.Model):
    """Append-only trail of security and business events."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    # no FK: failed logins are recorded for unknown emails too
    user_id = db.Column(db.Integer, nullable=True, index=True)
    action = db.Column(db.String(80), nullable=False, index=True)
    entity = db.Column(db.String(80), nullable=True)
    entity_id = db.Column(db.String(80), nullable=True)

    method = db.Column(db.String(10), nullable=True)
    path = db.Column(db.String(255), nullable=True)
    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=datetime.now, nullable=False)
