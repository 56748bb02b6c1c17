import os
from datetime import time

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_time(value: str | None, default: time) -> time:
    if not value:
        return default
    hours, minutes = value.strip().split(":", 1)
    return time(int(hours), int(minutes))


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:4200"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# "default": weekdays without an entry fall back to the default workday, weekends are closed.
# "strict": a weekday without an entry is never bookable.
WORKING_HOURS_FALLBACK = os.getenv("WORKING_HOURS_FALLBACK", "default").strip().lower()
DEFAULT_WORKDAY_START = _get_time(os.getenv("DEFAULT_WORKDAY_START"), time(9, 0))
DEFAULT_WORKDAY_END = _get_time(os.getenv("DEFAULT_WORKDAY_END"), time(17, 0))
WEEKEND_DAYS = frozenset({5, 6})

# Width of the appointments.notes column; the configurable limit may not exceed it.
NOTES_COLUMN_LENGTH = 500
MAX_APPOINTMENT_NOTES_LENGTH = int(os.getenv("MAX_APPOINTMENT_NOTES_LENGTH", str(NOTES_COLUMN_LENGTH)))
ENFORCE_STATUS_TRANSITIONS = _get_bool(os.getenv("ENFORCE_STATUS_TRANSITIONS"), default=True)


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if WORKING_HOURS_FALLBACK not in {"default", "strict"}:
        raise RuntimeError("WORKING_HOURS_FALLBACK must be 'default' or 'strict'.")
    if DEFAULT_WORKDAY_END <= DEFAULT_WORKDAY_START:
        raise RuntimeError("DEFAULT_WORKDAY_END must be after DEFAULT_WORKDAY_START.")
    if not 0 < MAX_APPOINTMENT_NOTES_LENGTH <= NOTES_COLUMN_LENGTH:
        raise RuntimeError(f"MAX_APPOINTMENT_NOTES_LENGTH must be between 1 and {NOTES_COLUMN_LENGTH}.")
