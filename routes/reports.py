from flask import Blueprint, jsonify, g

from models import db
from models.report import Report
from schemas import ReportRequest
from security.rbac import require_roles
from services.reports import generate_report, report_data
from utils.audit import log_event
from utils.errors import NotFound
from utils.validation import parse_body

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _report_json(report: Report, with_data: bool = False) -> dict:
    out = {
        "id": report.id,
        "title": report.title,
        "description": report.description,
        "report_type": report.report_type,
        "generated_by": report.generated_by,
        "generated_by_name": report.user.full_name if report.user else None,
        "generated_at": report.generated_at.isoformat(),
    }
    if with_data:
        out["report_data"] = report_data(report)
    return out


@reports_bp.post("/generate")
@require_roles("ADMIN")
def generate():
    data = parse_body(ReportRequest)
    report = generate_report(
        g.user.id, data.report_type, data.title, data.start_date, data.end_date,
        description=data.description,
    )
    log_event("REPORT_GENERATE", user_id=g.user.id, entity="report", entity_id=report.id,
              metadata={"report_type": report.report_type})
    return jsonify(_report_json(report, with_data=True)), 201


@reports_bp.get("")
@require_roles("ADMIN")
def list_reports():
    rows = Report.query.order_by(Report.generated_at.desc()).all()
    return jsonify([_report_json(r) for r in rows]), 200


@reports_bp.get("/<int:report_id>")
@require_roles("ADMIN")
def get_report(report_id: int):
    report = db.session.get(Report, report_id)
    if report is None:
        raise NotFound("Report not found")
    return jsonify(_report_json(report, with_data=True)), 200
