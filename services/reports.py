import json

from flask import current_app

from models import db
from models.facility import Facility
from models.report import Report
from models.reservation import STATUS_CONFIRMED, Reservation
from models.time_slot import TimeSlot


def _confirmed_in_range(start, end):
    return (
        Reservation.query
        .join(TimeSlot, Reservation.slot_id == TimeSlot.id)
        .filter(
            Reservation.status == STATUS_CONFIRMED,
            TimeSlot.start_time >= start,
            TimeSlot.end_time <= end,
        )
        .all()
    )


def usage_report(start, end) -> dict:
    reservations = _confirmed_in_range(start, end)
    by_facility = {}
    by_activity = {}

    for r in reservations:
        facility = r.time_slot.facility
        entry = by_facility.setdefault(str(facility.id), {"name": facility.name, "count": 0})
        entry["count"] += 1

        activity = r.activity
        entry = by_activity.setdefault(str(activity.id), {"name": activity.name, "count": 0})
        entry["count"] += 1

    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "total_reservations": len(reservations),
        "reservations_by_facility": by_facility,
        "reservations_by_activity": by_activity,
    }


def financial_report(start, end) -> dict:
    revenue = {
        str(f.id): {"name": f.name, "revenue": 0}
        for f in Facility.query.order_by(Facility.name.asc()).all()
    }
    for r in _confirmed_in_range(start, end):
        revenue[str(r.time_slot.facility_id)]["revenue"] += r.total_price

    return {
        "start_date": start.date().isoformat(),
        "end_date": end.date().isoformat(),
        "total_revenue": sum(v["revenue"] for v in revenue.values()),
        "revenue_by_facility": revenue,
    }


def generate_report(user_id: int, report_type: str, title: str, start, end, description=None) -> Report:
    if report_type == "USAGE":
        data = usage_report(start, end)
    elif report_type == "FINANCIAL":
        data = financial_report(start, end)
    else:
        data = {"message": "Custom report generation pending."}

    report = Report(
        title=title,
        description=description,
        report_type=report_type,
        generated_by=user_id,
        report_data_json=json.dumps(data),
    )
    db.session.add(report)
    db.session.commit()
    current_app.logger.info("Report %s (%s) generated by user %s", report.id, report_type, user_id)
    return report


def report_data(report: Report) -> dict:
    return json.loads(report.report_data_json)
