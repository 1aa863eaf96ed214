from flask import Blueprint, jsonify, g

from models import db
from models.user import ROLE_USER, User, Role
from schemas import ChangePasswordRequest, LoginRequest, ProfileUpdate, RegisterRequest
from security.csrf import issue_csrf_token
from security.password import hash_password, needs_rehash, verify_password
from security.rbac import login_required
from security.session import (
    attach_session_cookie,
    clear_session_cookie,
    create_session,
    raw_token_from_request,
    revoke_all_sessions,
    revoke_session,
)
from utils.audit import log_event
from utils.errors import AuthenticationRequired, Conflict, ValidationFailed
from utils.serializers import user_json
from utils.validation import parse_body

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
profile_bp = Blueprint("profile", __name__, url_prefix="/api/user")


def _email_taken(email: str, exclude_id=None) -> bool:
    q = User.query.filter(db.func.lower(User.email) == email.lower())
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


@auth_bp.post("/register")
def register():
    data = parse_body(RegisterRequest)
    email = data.email.lower()

    if _email_taken(email):
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        raise Conflict("User with this email already exists")
    if User.query.filter_by(username=data.username).first():
        raise Conflict("User with this username already exists")

    role = Role.query.filter_by(name=ROLE_USER).first()
    if role is None:
        raise RuntimeError("Default user role not found")

    user = User(
        username=data.username,
        email=email,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        password_hash=hash_password(data.password),
        role_id=role.id,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id)

    return jsonify(message="User registered successfully", user=user_json(user)), 201


@auth_bp.post("/login")
def login():
    data = parse_body(LoginRequest)
    email = data.email.lower()

    user = User.query.filter(db.func.lower(User.email) == email).first()
    if not user or not verify_password(data.password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        raise AuthenticationRequired("Invalid credentials")
    if not user.is_active:
        log_event("LOGIN_FAIL_INACTIVE", user_id=user.id)
        raise AuthenticationRequired("Account is disabled")

    # BCRYPT_ROUNDS changed since this hash was made
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(data.password)
        db.session.commit()

    # Rotate: one live session per user
    revoked_count = revoke_all_sessions(user.id)
    raw_token = create_session(user.id)

    resp = jsonify(message="Login OK", user=user_json(user))
    attach_session_cookie(resp, raw_token)
    issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.get("/session")
@login_required
def current_session():
    return jsonify(
        user=user_json(g.user),
        expires_at=g.session.expires_at.isoformat(),
    ), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(raw_token_from_request())
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    clear_session_cookie(resp)
    return resp, 200


# ---------- own profile ----------

@profile_bp.get("/profile")
@login_required
def get_profile():
    return jsonify(user_json(g.user)), 200


@profile_bp.put("/update")
@login_required
def update_profile():
    data = parse_body(ProfileUpdate)
    email = data.email.lower()

    if email != g.user.email.lower() and _email_taken(email, exclude_id=g.user.id):
        raise ValidationFailed("Email is already in use")

    g.user.first_name = data.first_name
    g.user.last_name = data.last_name
    g.user.email = email
    g.user.phone = data.phone
    db.session.commit()

    log_event("PROFILE_UPDATE", user_id=g.user.id)
    return jsonify(user_json(g.user)), 200


@profile_bp.post("/change-password")
@login_required
def change_password():
    data = parse_body(ChangePasswordRequest)

    if not verify_password(data.current_password, g.user.password_hash):
        raise ValidationFailed("Current password is incorrect")

    g.user.password_hash = hash_password(data.new_password)
    db.session.commit()

    log_event("PASSWORD_CHANGED", user_id=g.user.id)
    return jsonify(success=True), 200
