from __future__ import annotations

import importlib
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..core.constants import DEFAULT_DATABASE_PATH, DEFAULT_SESSION_DAYS
from ..core.exceptions import ConfigurationMissing
from ..database.connection import DBConfig

REQUIRED_SETTINGS = ("AUTH_SECRET", "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_CALLBACK_URL")


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def get_settings_module() -> str:
    # APP_ENV picks the settings module; anything unknown means development.
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return f"{__name__}.production"

    if env in {"test", "testing"}:
        return f"{__name__}.testing"

    return f"{__name__}.development"


@dataclass(frozen=True)
class Settings:
    auth_secret: str
    google_client_id: str
    google_client_secret: str
    google_callback_url: str
    database_path: str = DEFAULT_DATABASE_PATH
    enable_database_logging: bool = False
    debug: bool = False
    testing: bool = False
    session_days: int = DEFAULT_SESSION_DAYS
    auto_init_db: bool = False
    auto_seed_db: bool = False


def load_settings(module_name: Optional[str] = None, *, overrides: Optional[Mapping[str, Any]] = None) -> Settings:
    """Read a settings module, apply overrides and validate required keys.

    Raises ConfigurationMissing naming every absent (or blank) required key.
    """
    settings_module = importlib.import_module(module_name or get_settings_module())
    values = {name: getattr(settings_module, name) for name in dir(settings_module) if name.isupper()}
    values.update(overrides or {})

    missing = [key for key in REQUIRED_SETTINGS if not str(values.get(key) or "").strip()]
    if missing:
        raise ConfigurationMissing(missing)

    return Settings(
        auth_secret=str(values["AUTH_SECRET"]),
        google_client_id=str(values["GOOGLE_CLIENT_ID"]),
        google_client_secret=str(values["GOOGLE_CLIENT_SECRET"]),
        google_callback_url=str(values["GOOGLE_CALLBACK_URL"]),
        database_path=str(values.get("DATABASE_PATH") or DEFAULT_DATABASE_PATH),
        enable_database_logging=bool(values.get("ENABLE_DATABASE_LOGGING", False)),
        debug=bool(values.get("DEBUG", False)),
        testing=bool(values.get("TESTING", False)),
        session_days=int(values.get("SESSION_DAYS") or DEFAULT_SESSION_DAYS),
        auto_init_db=bool(values.get("AUTO_INIT_DB", False)),
        auto_seed_db=bool(values.get("AUTO_SEED_DB", False)),
    )


def load_db_config(module_name: Optional[str] = None) -> DBConfig:
    """Database settings only; scripts use this and skip the login keys."""
    settings_module = importlib.import_module(module_name or get_settings_module())
    return DBConfig(
        path=str(getattr(settings_module, "DATABASE_PATH", None) or DEFAULT_DATABASE_PATH),
        echo=bool(getattr(settings_module, "ENABLE_DATABASE_LOGGING", False)),
    )
