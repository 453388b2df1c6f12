import os

from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

# Load .env from project root when present
load_dotenv(os.path.join(BASE_DIR, ".env"))


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    # Hex key for provider email credentials; derived from SECRET_KEY when unset
    ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

    # SQLite database file stored next to the app as bookwise.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "bookwise.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SEED_ROLES_ON_STARTUP = _env_bool("SEED_ROLES_ON_STARTUP", "true")

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "bookwise_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 1 hour
    IDLE_TIMEOUT_SECONDS = 60 * 60

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", "false")

    BCRYPT_ROUNDS = 12

    # Availability
    # Blocked dates are only enforced by the booking check unless this is on
    SLOTS_HONOR_BLOCKED_DATES = _env_bool("SLOTS_HONOR_BLOCKED_DATES", "false")

    # Reminder emails for bookings starting within this many hours
    REMINDER_WINDOW_HOURS = int(os.getenv("REMINDER_WINDOW_HOURS", "24"))

    # Platform email (SMTP), used when a provider has no working settings of their own
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", "true")

    # Resend API (last resort before log-only)
    RESEND_API_KEY = os.getenv("RESEND_API_KEY")
    EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Bookwise <noreply@bookwise.local>")

    # AI chat
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
    OPENAI_TIMEOUT_SECONDS = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "30"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DEBUG = False
