import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as sportcentre.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "sportcentre.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # create tables on startup instead of running migrations (dev/tests)
    AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "false").lower() == "true"

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "sportcentre_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 30 minutes
    IDLE_TIMEOUT_SECONDS = 30 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # bcrypt cost factor
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Slot generation sweep
    SLOT_GENERATION_DAYS = int(os.getenv("SLOT_GENERATION_DAYS", "7"))
    SLOT_DURATION_MINUTES = 60

    # Defaults for the system settings row (created on first use)
    DEFAULT_OPENING_HOUR = 8
    DEFAULT_CLOSING_HOUR = 20
    DEFAULT_MAX_BOOKING_LEAD_DAYS = 14
    DEFAULT_CANCELLATION_DEADLINE_HOURS = 24
    DEFAULT_MAX_ACTIVE_RESERVATIONS_PER_USER = 3

    # Basic app settings
    DEBUG = False
