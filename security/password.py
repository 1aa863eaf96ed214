import bcrypt
from flask import current_app, has_app_context

DEFAULT_ROUNDS = 12

def configured_rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_ROUNDS))
    return DEFAULT_ROUNDS

def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or not plain_password:
        raise ValueError("Password must be a non-empty string")

    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=configured_rounds()))
    return hashed.decode("utf-8")

def verify_password(plain_password: str, password_hash) -> bool:
    # staff-created customer accounts have no password at all
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False

def needs_rehash(password_hash: str) -> bool:
    """True when the stored hash was made with a different cost than configured ("$2b$12$...")."""
    try:
        cost = int(password_hash.split("$")[2])
    except (AttributeError, IndexError, ValueError):
        return False
    return cost != configured_rounds()
