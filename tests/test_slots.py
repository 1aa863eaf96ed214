from datetime import date, datetime, timedelta

from conftest import book
from models import db
from models.facility import Facility
from models.time_slot import TimeSlot
from services.slots import compute_slot_times, generate_slots
from utils import clock


def test_compute_slot_times_is_hourly_within_opening_hours():
    times = compute_slot_times(8, 11, date(2026, 3, 2), days=2)

    assert times[0] == (datetime(2026, 3, 2, 8), datetime(2026, 3, 2, 9))
    assert times[2] == (datetime(2026, 3, 2, 10), datetime(2026, 3, 2, 11))
    assert times[3][0] == datetime(2026, 3, 3, 8)
    assert len(times) == 6


def test_generate_slots_for_facility(app, venue):
    with app.app_context():
        facility = db.session.get(Facility, venue["facility_id"])
        result = generate_slots(facility, days=2)

        assert result["slots_generated"] == 24
        assert result["slots_deleted"] == 0
        assert TimeSlot.query.filter_by(facility_id=facility.id).count() == 24


def test_regeneration_never_touches_reserved_slots(app, user_client, venue):
    with app.app_context():
        generate_slots(db.session.get(Facility, venue["facility_id"]), days=2)
        tomorrow = clock.start_of_day(clock.now()) + timedelta(days=1)
        slot = TimeSlot.query.filter_by(facility_id=venue["facility_id"], start_time=tomorrow.replace(hour=10)).one()
        slot_id = slot.id

    assert book(user_client, venue, slot_id).status_code == 200

    with app.app_context():
        result = generate_slots(db.session.get(Facility, venue["facility_id"]), days=2)
        reserved = db.session.get(TimeSlot, slot_id)

        assert reserved is not None
        assert reserved.is_available is False
        assert result["slots_kept"] == 1
        assert result["slots_deleted"] == 23
        assert result["slots_generated"] == 23
        assert TimeSlot.query.filter_by(facility_id=venue["facility_id"]).count() == 24


def test_generate_slots_endpoint_rejects_inactive_facility(app, admin_client, venue):
    with app.app_context():
        db.session.get(Facility, venue["facility_id"]).status = "MAINTENANCE"
        db.session.commit()

    resp = admin_client.post(f"/api/facilities/{venue['facility_id']}/generate-slots")

    assert resp.status_code == 400


def test_generate_slots_endpoint(admin_client, user_client, venue):
    resp = admin_client.post(f"/api/facilities/{venue['facility_id']}/generate-slots")
    assert resp.status_code == 200
    assert resp.get_json()["slots_generated"] == 24

    assert user_client.post(f"/api/facilities/{venue['facility_id']}/generate-slots").status_code == 403


def test_available_slots_requires_parameters(client):
    resp = client.get("/api/timeslots/available?facilityId=1")

    assert resp.status_code == 400


def test_available_slots_for_a_day(app, client, venue, make_slot):
    day = clock.start_of_day(clock.now()) + timedelta(days=3)
    free = make_slot(start=day.replace(hour=9))
    make_slot(start=day.replace(hour=10), available=False)
    make_slot(start=day + timedelta(days=1, hours=9))

    resp = client.get(f"/api/timeslots/available?facilityId={venue['facility_id']}&date={day.date().isoformat()}")

    assert resp.status_code == 200
    assert [s["id"] for s in resp.get_json()] == [free]


def test_time_slots_report_effective_availability(client, user_client, venue, make_slot):
    day = clock.start_of_day(clock.now()) + timedelta(days=3)
    taken = make_slot(start=day.replace(hour=9))
    free = make_slot(start=day.replace(hour=10))
    book(user_client, venue, taken)

    resp = client.get(f"/api/time-slots?facilityId={venue['facility_id']}&date={day.date().isoformat()}")

    flags = {s["id"]: s["is_available"] for s in resp.get_json()}
    assert flags == {taken: False, free: True}


def test_facility_availability_summary(client, venue, make_slot):
    day = clock.start_of_day(clock.now()) + timedelta(days=3)
    make_slot(start=day.replace(hour=9))
    make_slot(start=day.replace(hour=10), available=False)

    resp = client.get(f"/api/facilities/availability?date={day.date().isoformat()}")

    entry = resp.get_json()["facilities"][0]
    assert entry["facility_name"] == "Main Hall"
    assert entry["summary"] == "1/2 slots available"


def test_facility_availability_bad_date_means_today(client, venue):
    resp = client.get("/api/facilities/availability?date=not-a-date")

    assert resp.status_code == 200
    assert resp.get_json()["date"] == clock.now().date().isoformat()
    assert resp.get_json()["facilities"][0]["summary"] == "No time slots"


def test_zero_days_generates_nothing(app, venue):
    with app.app_context():
        result = generate_slots(db.session.get(Facility, venue["facility_id"]), days=0)

        assert result["days"] == 0
        assert result["slots_generated"] == 0
