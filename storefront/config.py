"""Runtime configuration for the app (read from the environment, toggleable during tests/runtime)."""
import os
from typing import NamedTuple

from dotenv import load_dotenv

load_dotenv()


class Settings(NamedTuple):
    database_url: str
    db_echo: bool
    log_level: str
    log_json: bool
    auth_required: bool
    jwt_secret: str
    jwt_algorithm: str


def _flag(value: str | None) -> bool:
    return (value or "").lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./storefront.db"),
        db_echo=_flag(os.getenv("DB_ECHO")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_json=_flag(os.getenv("LOG_JSON", "true")),
        auth_required=_flag(os.getenv("AUTH_REQUIRED")),
        jwt_secret=os.getenv("JWT_SECRET", "storefront-dev-secret-change-me-in-production"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
    )


settings = load_settings()


def set_auth_required(value: bool):
    global settings
    settings = settings._replace(auth_required=bool(value))


def is_auth_required() -> bool:
    return settings.auth_required
