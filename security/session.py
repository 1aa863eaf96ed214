import hashlib
import secrets
from datetime import timedelta
from flask import request, current_app

from models import db
from models.session import Session
from utils import clock

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "sportcentre_session")

def _lifetime() -> int:
    return current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)

def create_session(user_id: int) -> str:
    """
    Creates a server-side session and returns the RAW token for the cookie.
    Only the SHA-256 of the token is persisted.
    """
    raw_token = secrets.token_urlsafe(32)
    now = clock.now()

    db.session.add(Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        created_at=now,
        last_seen_at=now,
        expires_at=now + timedelta(seconds=_lifetime()),
        ip=request.headers.get("X-Forwarded-For", request.remote_addr),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token

def attach_session_cookie(resp, raw_token: str):
    resp.set_cookie(
        _cookie_name(),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=_lifetime(),
        path="/",
    )
    return resp

def clear_session_cookie(resp):
    resp.delete_cookie(_cookie_name(), path="/")
    return resp

def raw_token_from_request():
    return request.cookies.get(_cookie_name())

def get_session_from_request():
    """The live session for the request cookie, touched for idle tracking; None otherwise."""
    raw_token = raw_token_from_request()
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    now = clock.now()
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 30 * 60)
    if sess is None or not sess.is_live(now, idle_seconds):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess

def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess:
        return False
    sess.revoke(clock.now())
    db.session.commit()
    return True

def revoke_all_sessions(user_id: int, commit: bool = True) -> int:
    now = clock.now()
    sessions = Session.query.filter_by(user_id=user_id, revoked_at=None).all()
    for s in sessions:
        s.revoke(now)
    if commit:
        db.session.commit()
    return len(sessions)
