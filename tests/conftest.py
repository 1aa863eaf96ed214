"""
Shared fixtures: an app on a fresh in-memory SQLite database per test,
plus small factories for users, facilities, activities and slots.
"""
from datetime import timedelta

import pytest

from app import create_app
from config import Config
from models import db
from models.activity import Activity, FacilityActivity
from models.facility import Facility
from models.time_slot import TimeSlot
from models.user import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_USER, Role, User
from routes.users import ensure_employee_profile
from security.password import hash_password
from utils import clock

PASSWORD = "secret123"


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    AUTO_CREATE_TABLES = True
    BCRYPT_ROUNDS = 4
    SLOT_GENERATION_DAYS = 2


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_client(app):
    return app.test_client


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(role=ROLE_USER, email=None, password=PASSWORD, **fields) -> int:
        counter["n"] += 1
        n = counter["n"]
        with app.app_context():
            user = User(
                username=fields.pop("username", f"user{n}"),
                email=email or f"user{n}@example.com",
                first_name=fields.pop("first_name", "Test"),
                last_name=fields.pop("last_name", f"User{n}"),
                password_hash=hash_password(password),
                role=Role.query.filter_by(name=role).one(),
                **fields,
            )
            db.session.add(user)
            ensure_employee_profile(user)
            db.session.commit()
            return user.id

    return _make


def login(client, email, password=PASSWORD):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    # echo the double-submit token on every later request
    client.environ_base["HTTP_X_CSRF_TOKEN"] = client.get_cookie("csrf_token").value
    return resp


@pytest.fixture
def user_client(make_user, make_client):
    make_user(ROLE_USER, email="player@example.com")
    c = make_client()
    login(c, "player@example.com")
    return c


@pytest.fixture
def admin_client(make_user, make_client):
    make_user(ROLE_ADMIN, email="admin@example.com")
    c = make_client()
    login(c, "admin@example.com")
    return c


@pytest.fixture
def employee_client(make_user, make_client):
    make_user(ROLE_EMPLOYEE, email="staff@example.com")
    c = make_client()
    login(c, "staff@example.com")
    return c


@pytest.fixture
def venue(app):
    """An active facility with one linked activity; returns their ids."""
    with app.app_context():
        facility = Facility(name="Main Hall", capacity=20, status="ACTIVE", opening_hour=8, closing_hour=20)
        activity = Activity(name="Badminton", duration_minutes=60, price=1500, max_participants=4)
        db.session.add_all([facility, activity])
        db.session.flush()
        db.session.add(FacilityActivity(facility_id=facility.id, activity_id=activity.id))
        db.session.commit()
        return {"facility_id": facility.id, "activity_id": activity.id}


@pytest.fixture
def make_slot(app, venue):
    def _make(start=None, hours_ahead=None, facility_id=None, available=True) -> int:
        if start is None:
            base = clock.now().replace(minute=0, second=0, microsecond=0)
            start = base + timedelta(hours=hours_ahead if hours_ahead is not None else 72)
        with app.app_context():
            slot = TimeSlot(
                facility_id=facility_id or venue["facility_id"],
                start_time=start,
                end_time=start + timedelta(hours=1),
                is_available=available,
            )
            db.session.add(slot)
            db.session.commit()
            return slot.id

    return _make


def book(client, venue, slot_id):
    return client.post("/api/reservations", json={
        "facility_id": venue["facility_id"],
        "activity_id": venue["activity_id"],
        "slot_id": slot_id,
    })
