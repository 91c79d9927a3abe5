import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

DAY_SECONDS = 24 * 60 * 60


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as coursehub.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "coursehub.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Dev/test convenience; production runs `flask db upgrade`
    AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "false").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "coursehub_session"

    # 7 days session lifetime
    SESSION_LIFETIME_SECONDS = 7 * DAY_SECONDS

    # Idle timeout: 2 hours
    IDLE_TIMEOUT_SECONDS = 2 * 60 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Take the client IP from X-Forwarded-For (only behind a trusted proxy)
    TRUST_PROXY_HEADERS = os.getenv("TRUST_PROXY_HEADERS", "true").lower() == "true"

    # Login brute-force protection: 10 failures per 24h window, 24h block
    LOGIN_MAX_ATTEMPTS = int(os.getenv("LOGIN_MAX_ATTEMPTS", "10"))
    LOGIN_WINDOW_SECONDS = int(os.getenv("LOGIN_WINDOW_SECONDS", str(DAY_SECONDS)))
    LOGIN_BLOCK_SECONDS = int(os.getenv("LOGIN_BLOCK_SECONDS", str(DAY_SECONDS)))

    # Public contact form: 3 submissions per IP per day
    CONTACT_MAX_ATTEMPTS = int(os.getenv("CONTACT_MAX_ATTEMPTS", "3"))
    CONTACT_WINDOW_SECONDS = DAY_SECONDS
    CONTACT_BLOCK_SECONDS = DAY_SECONDS

    # Course comments: 10 per user per day
    COMMENT_MAX_ATTEMPTS = int(os.getenv("COMMENT_MAX_ATTEMPTS", "10"))
    COMMENT_WINDOW_SECONDS = DAY_SECONDS
    COMMENT_BLOCK_SECONDS = DAY_SECONDS
    MAX_COMMENTS_PER_COURSE = 5

    # Course reviews: 5 per user per day
    REVIEW_MAX_ATTEMPTS = int(os.getenv("REVIEW_MAX_ATTEMPTS", "5"))
    REVIEW_WINDOW_SECONDS = DAY_SECONDS
    REVIEW_BLOCK_SECONDS = DAY_SECONDS

    # Basic app settings
    DEBUG = False
