from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import g

from models.user import ROLE_ADMIN
from utils.errors import AuthenticationRequired, PermissionDenied

STAFF_ROLES = ("ADMIN", "EMPLOYEE")


@dataclass(frozen=True)
class AuthOutcome:
    """Result of an authorization check: the user, or why access was denied."""

    user: Optional[object] = None
    denial: Optional[str] = None  # "unauthenticated" | "forbidden"

    @property
    def allowed(self) -> bool:
        return self.denial is None

    def raise_for_denial(self):
        if self.denial == "unauthenticated":
            raise AuthenticationRequired()
        if self.denial == "forbidden":
            raise PermissionDenied()
        return self.user


def authorize(*role_names: str) -> AuthOutcome:
    """Single entry point for session + role checks. No roles means any signed-in user."""
    user = getattr(g, "user", None)
    if user is None:
        return AuthOutcome(denial="unauthenticated")

    if role_names and user.role_name != ROLE_ADMIN and user.role_name not in role_names:
        return AuthOutcome(user=user, denial="forbidden")

    return AuthOutcome(user=user)


def has_role(*role_names: str) -> bool:
    return authorize(*role_names).allowed


def is_staff(user) -> bool:
    return user is not None and user.role_name in STAFF_ROLES


def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            authorize(*role_names).raise_for_denial()
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        authorize().raise_for_denial()
        return fn(*args, **kwargs)
    return wrapper
