# backend/timebank/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///timebank.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Civil timezone used for punch timestamps and the YYYY-MM-DD record date
    TIMEZONE = os.environ.get("TIMEZONE", "UTC")

    # "flag": record lateness and tell the client a justification is expected
    # "require_justification": refuse late punches until a justification is sent
    LATE_ARRIVAL_POLICY = os.environ.get("LATE_ARRIVAL_POLICY", "flag")
    ENFORCE_EARLIEST_ENTRY = _env_bool("ENFORCE_EARLIEST_ENTRY", False)

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "12"))

    # Punch receipts by email; disabled means "log only"
    MAIL_ENABLED = _env_bool("MAIL_ENABLED", False)
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "25"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", False)
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_SENDER = os.environ.get("MAIL_SENDER", "timebank@localhost")
    MAIL_TIMEOUT = float(os.environ.get("MAIL_TIMEOUT", "5"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    BOOTSTRAP_ADMIN_EMAIL = os.environ.get("BOOTSTRAP_ADMIN_EMAIL", "admin@timebank.local")

    # Browser origins allowed to call the API (comma separated)
    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
        if o.strip()
    ]
