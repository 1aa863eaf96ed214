from flask import current_app

from models import db
from models.user import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_USER, Role
from services.settings import load_policy

DEFAULT_ROLES = {
    ROLE_ADMIN: "Full access to administration",
    ROLE_EMPLOYEE: "Staff member handling reservations",
    ROLE_USER: "Registered customer",
}

def seed_roles() -> int:
    existing = {r.name for r in Role.query.all()}
    missing = [name for name in DEFAULT_ROLES if name not in existing]
    for name in missing:
        db.session.add(Role(name=name, description=DEFAULT_ROLES[name]))
    db.session.commit()
    return len(missing)

def seed_defaults():
    """Roles plus the system settings row; safe to run on every startup."""
    created = seed_roles()
    if created:
        current_app.logger.info("Seeded %d roles", created)
    load_policy()
