from datetime import timedelta

import pytest

from conftest import book, login
from models import db
from models.employee import Employee
from models.user import ROLE_EMPLOYEE, ROLE_USER, Role, User
from utils import clock

SETTINGS = {
    "default_opening_hour": 7,
    "default_closing_hour": 22,
    "max_booking_lead_days": 10,
    "cancellation_deadline_hours": 12,
    "max_active_reservations_per_user": 5,
}


def _role_id(app, name):
    with app.app_context():
        return Role.query.filter_by(name=name).one().id


# ---------- facilities / activities ----------

def test_facility_crud(admin_client, client, venue):
    resp = admin_client.post("/api/facilities", json={
        "name": "Court B", "capacity": 4, "opening_hour": 9, "closing_hour": 17,
        "activity_ids": [venue["activity_id"]],
    })
    assert resp.status_code == 201
    facility = resp.get_json()
    assert facility["status"] == "ACTIVE"
    assert facility["activity_ids"] == [venue["activity_id"]]

    names = [f["name"] for f in client.get("/api/facilities").get_json()]
    assert names == ["Court B", "Main Hall"]

    resp = admin_client.put(f"/api/facilities/{facility['id']}", json={"closing_hour": 8})
    assert resp.status_code == 400

    resp = admin_client.put(f"/api/facilities/{facility['id']}", json={"status": "maintenance", "activity_ids": []})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "MAINTENANCE"
    assert resp.get_json()["activity_ids"] == []

    assert admin_client.delete(f"/api/facilities/{facility['id']}").status_code == 200
    assert client.get(f"/api/facilities/{facility['id']}").status_code == 404


def test_facility_with_reservations_cannot_be_deleted(admin_client, user_client, venue, make_slot):
    book(user_client, venue, make_slot(hours_ahead=72))

    resp = admin_client.delete(f"/api/facilities/{venue['facility_id']}")

    assert resp.status_code == 409


def test_facility_write_needs_admin(user_client):
    resp = user_client.post("/api/facilities", json={
        "name": "X", "capacity": 1, "opening_hour": 8, "closing_hour": 9,
    })

    assert resp.status_code == 403


def test_activity_crud(admin_client, client, venue):
    resp = admin_client.post("/api/activities", json={
        "name": "Yoga", "price": 800, "max_participants": 12, "facility_ids": [venue["facility_id"]],
    })
    assert resp.status_code == 201
    yoga = resp.get_json()

    assert admin_client.post("/api/activities", json={
        "name": "yoga", "price": 1, "max_participants": 1,
    }).status_code == 409

    listed = client.get(f"/api/activities?facilityId={venue['facility_id']}").get_json()
    assert {a["name"] for a in listed} == {"Badminton", "Yoga"}

    resp = admin_client.put(f"/api/activities/{yoga['id']}", json={"price": 900})
    assert resp.get_json()["price"] == 900

    assert admin_client.delete(f"/api/activities/{yoga['id']}").status_code == 200
    assert [a["name"] for a in client.get("/api/activities").get_json()] == ["Badminton"]
    assert client.get(f"/api/activities/{yoga['id']}").get_json()["is_active"] is False


# ---------- settings ----------

def test_settings_roundtrip(admin_client, user_client):
    resp = admin_client.patch("/api/settings", json=SETTINGS)
    assert resp.status_code == 200
    assert resp.get_json()["max_booking_lead_days"] == 10

    assert admin_client.get("/api/settings").get_json()["cancellation_deadline_hours"] == 12
    assert user_client.get("/api/settings/public").get_json() == {
        "max_booking_lead_days": 10,
        "cancellation_deadline_hours": 12,
    }
    assert user_client.get("/api/settings").status_code == 403


def test_settings_validation(admin_client):
    resp = admin_client.patch("/api/settings", json={**SETTINGS, "default_closing_hour": 6})
    assert resp.status_code == 400

    resp = admin_client.patch("/api/settings", json={**SETTINGS, "max_booking_lead_days": 0})
    assert resp.status_code == 400


# ---------- users ----------

def test_admin_creates_employee_with_profile(app, admin_client):
    resp = admin_client.post("/api/users", json={
        "username": "coach",
        "first_name": "Cora",
        "last_name": "Coach",
        "email": "coach@example.com",
        "password": "coachpass",
        "role_id": _role_id(app, ROLE_EMPLOYEE),
    })

    assert resp.status_code == 201
    with app.app_context():
        user = User.query.filter_by(email="coach@example.com").one()
        assert Employee.query.filter_by(user_id=user.id).count() == 1


def test_role_change_and_disable(app, admin_client, make_user, make_client):
    user_id = make_user(ROLE_USER, email="member@example.com")
    member = make_client()
    login(member, "member@example.com")

    resp = admin_client.patch(f"/api/users/{user_id}", json={"role_id": _role_id(app, ROLE_EMPLOYEE)})
    assert resp.status_code == 200
    assert resp.get_json()["role"]["name"] == ROLE_EMPLOYEE
    with app.app_context():
        assert db.session.get(User, user_id).employee is not None

    assert admin_client.patch(f"/api/users/{user_id}", json={}).status_code == 400

    assert admin_client.delete(f"/api/users/{user_id}").status_code == 204
    assert member.get("/api/auth/session").status_code == 401
    with app.app_context():
        assert db.session.get(User, user_id).is_active is False


def test_user_search(admin_client, employee_client, user_client, make_user):
    make_user(ROLE_USER, email="zara@example.com", first_name="Zara", last_name="Zed")
    make_user(ROLE_USER, email="zoe@example.com", first_name="Zoe", last_name="Zed", is_active=False)

    resp = employee_client.get("/api/users/search?query=zed")
    assert resp.status_code == 200
    assert [u["email"] for u in resp.get_json()] == ["zara@example.com"]

    assert employee_client.get("/api/users/search?query=z").status_code == 400
    assert user_client.get("/api/users/search?query=zed").status_code == 403


def test_roles_listing(user_client):
    names = [r["name"] for r in user_client.get("/api/roles").get_json()]

    assert names == ["ADMIN", "EMPLOYEE", "USER"]


# ---------- shifts / employees ----------

def test_shift_lifecycle(app, admin_client, make_user, make_client, user_client):
    staff_id = make_user(ROLE_EMPLOYEE, email="shift@example.com", last_name="Able")
    start = clock.start_of_day(clock.now()) + timedelta(days=1, hours=8)

    resp = admin_client.post("/api/shifts", json={
        "employee_id": staff_id,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=8)).isoformat(),
        "shift_type": "morning",
    })
    assert resp.status_code == 201
    shift = resp.get_json()
    assert shift["user_id"] == staff_id
    assert shift["employee_name"] == "Test Able"

    staff = make_client()
    login(staff, "shift@example.com")
    assert [s["id"] for s in staff.get("/api/shifts").get_json()] == [shift["id"]]
    assert user_client.get("/api/shifts").status_code == 403

    resp = admin_client.put(f"/api/shifts/{shift['id']}", json={
        "end_time": (start - timedelta(hours=1)).isoformat(),
    })
    assert resp.status_code == 400

    resp = admin_client.put(f"/api/shifts/{shift['id']}", json={"shift_type": "evening"})
    assert resp.get_json()["shift_type"] == "evening"

    assert admin_client.delete(f"/api/shifts/{shift['id']}").status_code == 200
    assert admin_client.get("/api/shifts").get_json() == []


def test_shift_for_non_employee_is_not_found(admin_client, make_user):
    user_id = make_user(ROLE_USER)
    start = clock.now() + timedelta(days=1)

    resp = admin_client.post("/api/shifts", json={
        "employee_id": user_id,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=4)).isoformat(),
        "shift_type": "morning",
    })

    assert resp.status_code == 404


def test_employees_listing(admin_client, make_user):
    make_user(ROLE_EMPLOYEE, email="e1@example.com", last_name="Brown")
    make_user(ROLE_EMPLOYEE, email="e2@example.com", last_name="Adams")
    make_user(ROLE_USER, email="u1@example.com")

    emails = [u["email"] for u in admin_client.get("/api/employees").get_json()]

    assert emails == ["e2@example.com", "e1@example.com"]


# ---------- reports ----------

def test_financial_and_usage_reports(app, admin_client, employee_client, venue, make_slot, make_user):
    customer_id = make_user(ROLE_USER)
    slot_id = make_slot(hours_ahead=72)
    resp = employee_client.post("/api/reservations/manual", json={
        "user_id": customer_id, "activity_id": venue["activity_id"], "slot_id": slot_id,
    })
    assert resp.status_code == 201

    now = clock.now()
    window = {
        "start_date": now.isoformat(),
        "end_date": (now + timedelta(days=7)).isoformat(),
    }

    resp = admin_client.post("/api/reports/generate", json={
        "report_type": "financial", "title": "Weekly revenue", **window,
    })
    assert resp.status_code == 201
    data = resp.get_json()["report_data"]
    assert data["total_revenue"] == 1500
    assert data["revenue_by_facility"][str(venue["facility_id"])]["revenue"] == 1500

    resp = admin_client.post("/api/reports/generate", json={
        "report_type": "USAGE", "title": "Weekly usage", **window,
    })
    usage = resp.get_json()
    assert usage["report_data"]["total_reservations"] == 1
    assert usage["generated_by_name"] == "Test User1"

    listed = admin_client.get("/api/reports").get_json()
    assert len(listed) == 2
    assert admin_client.get(f"/api/reports/{usage['id']}").get_json()["report_data"]["total_reservations"] == 1
    assert admin_client.get("/api/reports/999").status_code == 404


def test_report_range_validation(admin_client):
    now = clock.now()

    resp = admin_client.post("/api/reports/generate", json={
        "report_type": "CUSTOM", "title": "Bad",
        "start_date": now.isoformat(), "end_date": (now - timedelta(days=1)).isoformat(),
    })

    assert resp.status_code == 400


def test_settings_row_is_a_singleton(app):
    from sqlalchemy.exc import IntegrityError
    from models.system_setting import SystemSetting

    with app.app_context():
        db.session.add(SystemSetting(id=2))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()
        assert SystemSetting.query.count() == 1


def test_settings_creation_race_reads_existing_row(app, monkeypatch):
    from models.system_setting import SystemSetting
    from services import settings as settings_svc

    with app.app_context():
        settings_svc.update_policy({"max_active_reservations_per_user": 5})
    real = settings_svc._existing_row
    calls = {"n": 0}

    def missed_first_read():
        # the first lookup runs before the other request commits its row
        calls["n"] += 1
        return None if calls["n"] == 1 else real()

    monkeypatch.setattr(settings_svc, "_existing_row", missed_first_read)

    with app.app_context():
        policy = settings_svc.load_policy()

        assert policy.max_active_reservations_per_user == 5
        assert SystemSetting.query.count() == 1
