import bcrypt

from conftest import PASSWORD, login
from models import db
from models.audit_log import AuditLog
from models.user import ROLE_USER, User
from security.password import needs_rehash, verify_password

REGISTRATION = {
    "username": "jdoe",
    "first_name": "Jane",
    "last_name": "Doe",
    "email": "Jane.Doe@example.com",
    "password": "longenough",
}


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_register_and_login(client):
    resp = client.post("/api/auth/register", json=REGISTRATION)
    assert resp.status_code == 201
    assert resp.get_json()["user"]["role"]["name"] == ROLE_USER
    assert resp.get_json()["user"]["email"] == "jane.doe@example.com"

    resp = client.post("/api/auth/login", json={"email": "jane.doe@example.com", "password": "longenough"})
    assert resp.status_code == 200
    assert client.get_cookie("sportcentre_session") is not None
    assert client.get_cookie("csrf_token") is not None

    resp = client.get("/api/auth/session")
    assert resp.status_code == 200
    assert resp.get_json()["user"]["username"] == "jdoe"


def test_register_rejects_duplicates_and_bad_input(client):
    assert client.post("/api/auth/register", json=REGISTRATION).status_code == 201

    resp = client.post("/api/auth/register", json={**REGISTRATION, "username": "other"})
    assert resp.status_code == 409

    resp = client.post("/api/auth/register", json={**REGISTRATION, "email": "x@example.com", "password": "123"})
    assert resp.status_code == 400
    assert resp.get_json()["details"]


def test_login_with_wrong_password(app, client, make_user):
    make_user(ROLE_USER, email="p@example.com")

    resp = client.post("/api/auth/login", json={"email": "p@example.com", "password": "wrong-one"})

    assert resp.status_code == 401
    with app.app_context():
        assert AuditLog.query.filter_by(action="LOGIN_FAIL").count() == 1


def test_disabled_account_cannot_log_in(client, make_user):
    make_user(ROLE_USER, email="off@example.com", is_active=False)

    resp = client.post("/api/auth/login", json={"email": "off@example.com", "password": PASSWORD})

    assert resp.status_code == 401


def test_protected_endpoints_need_a_session(client):
    assert client.get("/api/auth/session").status_code == 401
    assert client.get("/api/reservations").status_code == 401
    assert client.get("/api/settings/public").status_code == 401


def test_logout_revokes_session(user_client):
    assert user_client.post("/api/auth/logout").status_code == 200

    assert user_client.get("/api/auth/session").status_code == 401


def test_unsafe_request_without_csrf_header_is_rejected(user_client):
    del user_client.environ_base["HTTP_X_CSRF_TOKEN"]

    resp = user_client.post("/api/auth/logout")

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "CSRF validation failed"


def test_profile_update_and_password_change(client, make_user):
    make_user(ROLE_USER, email="me@example.com")
    make_user(ROLE_USER, email="taken@example.com")
    login(client, "me@example.com")

    resp = client.put("/api/user/update", json={
        "first_name": "New", "last_name": "Name", "email": "taken@example.com",
    })
    assert resp.status_code == 400

    resp = client.put("/api/user/update", json={
        "first_name": "New", "last_name": "Name", "email": "me2@example.com", "phone": "+3851234567",
    })
    assert resp.status_code == 200
    assert client.get("/api/user/profile").get_json()["email"] == "me2@example.com"

    resp = client.post("/api/user/change-password", json={
        "current_password": "not-it", "new_password": "brandnew1",
    })
    assert resp.status_code == 400

    resp = client.post("/api/user/change-password", json={
        "current_password": PASSWORD, "new_password": "brandnew1",
    })
    assert resp.status_code == 200

    client.post("/api/auth/logout")
    login(client, "me2@example.com", "brandnew1")


def test_login_rehashes_password_with_configured_cost(app, client, make_user):
    user_id = make_user(ROLE_USER, email="old@example.com")
    with app.app_context():
        user = db.session.get(User, user_id)
        user.password_hash = bcrypt.hashpw(PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=5)).decode("utf-8")
        db.session.commit()
        assert needs_rehash(user.password_hash)

    login(client, "old@example.com")

    with app.app_context():
        stored = db.session.get(User, user_id).password_hash
        assert not needs_rehash(stored)
        assert verify_password(PASSWORD, stored)
