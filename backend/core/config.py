import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:5173"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Rolling window expanded by slot generation, in days past the start date.
SLOT_WINDOW_DAYS = int(os.getenv("SLOT_WINDOW_DAYS", "28"))
NEXT_SLOT_LOOKAHEAD_DAYS = int(os.getenv("NEXT_SLOT_LOOKAHEAD_DAYS", "30"))
MIN_INTERVAL_MINUTES = int(os.getenv("MIN_INTERVAL_MINUTES", "5"))
MAX_INTERVAL_MINUTES = int(os.getenv("MAX_INTERVAL_MINUTES", "120"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if not 0 < MIN_INTERVAL_MINUTES <= MAX_INTERVAL_MINUTES:
        raise RuntimeError("MIN_INTERVAL_MINUTES must be positive and not above MAX_INTERVAL_MINUTES.")
    if SLOT_WINDOW_DAYS < 0:
        raise RuntimeError("SLOT_WINDOW_DAYS cannot be negative.")
