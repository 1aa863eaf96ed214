from datetime import datetime
from models.db import db

REPORT_TYPES = ("USAGE", "FINANCIAL", "CUSTOM")

class Report(db.Model):
    __tablename__ = "reports"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=True)
    report_type = db.Column(db.String(20), nullable=False)

    generated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    generated_at = db.Column(db.DateTime, default=datetime.now, nullable=False)
    report_data_json = db.Column(db.Text, nullable=False)

    user = db.relationship("User")
