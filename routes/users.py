from flask import Blueprint, jsonify, g, request

from models import db
from models.employee import Employee
from models.user import ROLE_EMPLOYEE, Role, User
from schemas import UserCreate, UserSearch, UserUpdate
from security.password import hash_password
from security.rbac import STAFF_ROLES, login_required, require_roles
from security.session import revoke_all_sessions
from utils.audit import log_event
from utils.errors import Conflict, NotFound, ValidationFailed
from utils.serializers import role_json, user_json
from utils.validation import parse_body, parse_data

users_bp = Blueprint("users", __name__, url_prefix="/api")

SEARCH_LIMIT = 10


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _get_role(role_id: int) -> Role:
    role = db.session.get(Role, role_id)
    if role is None:
        raise ValidationFailed("Invalid role")
    return role


def ensure_employee_profile(user: User):
    """Every EMPLOYEE user gets an Employee row to hang shifts on."""
    if user.role_name == ROLE_EMPLOYEE and user.employee is None:
        db.session.add(Employee(user=user))


@users_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    rows = User.query.order_by(User.last_name.asc(), User.first_name.asc()).all()
    return jsonify([user_json(u) for u in rows]), 200


@users_bp.post("/users")
@require_roles("ADMIN")
def create_user():
    data = parse_body(UserCreate)
    email = data.email.lower()

    if User.query.filter(db.func.lower(User.email) == email).first():
        raise Conflict("User with this email already exists")
    if User.query.filter_by(username=data.username).first():
        raise Conflict("User with this username already exists")

    role = _get_role(data.role_id)
    user = User(
        username=data.username,
        email=email,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        password_hash=hash_password(data.password),
        role=role,
        is_active=data.is_active,
    )
    db.session.add(user)
    ensure_employee_profile(user)
    db.session.commit()

    log_event("USER_CREATE", user_id=g.user.id, entity="user", entity_id=user.id, metadata={"role": role.name})
    return jsonify(user_json(user)), 201


@users_bp.patch("/users/<int:user_id>")
@require_roles("ADMIN")
def update_user(user_id: int):
    user = _get_user(user_id)
    data = parse_body(UserUpdate)

    if data.role_id is not None:
        user.role = _get_role(data.role_id)
        ensure_employee_profile(user)
    if data.is_active is not None:
        user.is_active = data.is_active
        if not data.is_active:
            revoke_all_sessions(user.id, commit=False)
    db.session.commit()

    log_event(
        "USER_UPDATE", user_id=g.user.id, entity="user", entity_id=user.id,
        metadata=data.model_dump(exclude_none=True),
    )
    return jsonify(user_json(user)), 200


@users_bp.delete("/users/<int:user_id>")
@require_roles("ADMIN")
def disable_user(user_id: int):
    user = _get_user(user_id)
    if user.id == g.user.id:
        raise ValidationFailed("You cannot disable your own account")

    # soft delete keeps reservation history intact
    user.is_active = False
    revoke_all_sessions(user.id, commit=False)
    db.session.commit()

    log_event("USER_DISABLE", user_id=g.user.id, entity="user", entity_id=user.id)
    return "", 204


@users_bp.get("/users/search")
@require_roles(*STAFF_ROLES)
def search_users():
    query = parse_data(UserSearch, request.args.to_dict(), message="Search query must be at least 2 characters long")
    pattern = f"%{query.query.lower()}%"

    rows = (
        User.query
        .filter(
            User.is_active.is_(True),
            db.or_(
                db.func.lower(User.first_name).like(pattern),
                db.func.lower(User.last_name).like(pattern),
                db.func.lower(User.email).like(pattern),
                User.phone.like(f"%{query.query}%"),
            ),
        )
        .order_by(User.last_name.asc(), User.first_name.asc())
        .limit(SEARCH_LIMIT)
        .all()
    )
    return jsonify([user_json(u) for u in rows]), 200


@users_bp.get("/roles")
@login_required
def list_roles():
    rows = Role.query.order_by(Role.name.asc()).all()
    return jsonify([role_json(r) for r in rows]), 200
