"""Configuration module for the stateable engine."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from stateable.core.exceptions import ConfigurationError

load_dotenv()

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from None


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    LOG_LEVEL: str
    LOG_FILE: str | None
    STATEABLE_HISTORY_TABLE: str
    STATEABLE_RECENT_DAYS: int

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=False)

    config = Config(
        APP_NAME="stateable",
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./stateable.db"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE") or None,
        STATEABLE_HISTORY_TABLE=os.getenv("STATEABLE_HISTORY_TABLE", "state_transitions").strip(),
        STATEABLE_RECENT_DAYS=_as_int("STATEABLE_RECENT_DAYS", 7),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2"}:
        raise ConfigurationError(
            "DATABASE_URL must use sqlite:// or postgresql:// style URL."
        )
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def validate_table_name(name: str) -> str:
    """Return ``name`` if it is usable as a SQL table name."""
    if not _TABLE_NAME_RE.match(name or ""):
        raise ConfigurationError(f"Invalid history table name: {name!r}")
    return name


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)
    validate_table_name(config.STATEABLE_HISTORY_TABLE)

    if config.STATEABLE_RECENT_DAYS < 1:
        raise ConfigurationError("STATEABLE_RECENT_DAYS must be >= 1.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
