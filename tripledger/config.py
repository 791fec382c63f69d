"""
config.py — Environment-driven settings for the Trip Ledger API.

Values are read once at import from the process environment, after loading
a .env file from the project root (or from tripledger/.env as a fallback).

Recognised variables:
  SECRET_KEY          Flask secret. Must be overridden in production.
  LOG_LEVEL           DEBUG, INFO, WARNING, ... (per-environment default)
  DEFAULT_CURRENCY    3-letter code for trips stored without one (PHP)
  MAX_CONTENT_LENGTH  request body limit in bytes (2 MiB)
  CORS_ALLOW_ALL      1/true to reflect any Origin (on in development/testing)
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent

load_dotenv(_PACKAGE_DIR.parent / ".env")
load_dotenv(_PACKAGE_DIR / ".env")

_PLACEHOLDER_SECRET = "change-me-in-production"


def _env(name: str, default: str) -> str:
    """Returns the env var `name`, treating an empty value as unset."""
    return os.getenv(name) or default


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name, str(default)))
    except ValueError:
        return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if not raw:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_log_level(default: str) -> int:
    """LOG_LEVEL as a logging constant; unknown names fall back to `default`."""
    level = logging.getLevelName(_env("LOG_LEVEL", default).upper())
    return level if isinstance(level, int) else logging.getLevelName(default)


class BaseConfig:

    SECRET_KEY: str = _env("SECRET_KEY", _PLACEHOLDER_SECRET)

    JSON_SORT_KEYS: bool = False

    # Trips stored before currencies were tracked report in this currency.
    DEFAULT_CURRENCY: str = _env("DEFAULT_CURRENCY", "PHP").upper()

    # Snapshots are posted whole on every request.
    MAX_CONTENT_LENGTH: int = _env_int("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)

    LOG_LEVEL: int = _env_log_level("INFO")

    CORS_ALLOW_ALL: bool = _env_flag("CORS_ALLOW_ALL", False)


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    LOG_LEVEL: int = _env_log_level("DEBUG")
    CORS_ALLOW_ALL: bool = _env_flag("CORS_ALLOW_ALL", True)


class TestingConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = True

    # Fixed so tests do not depend on the developer's .env.
    DEFAULT_CURRENCY: str = "PHP"
    CORS_ALLOW_ALL: bool = True


class ProductionConfig(BaseConfig):
    DEBUG:   bool = False
    TESTING: bool = False

    LOG_LEVEL: int = _env_log_level("WARNING")


def validate_production_config(app) -> None:
    """
    Fail-fast guard, called by the app factory right after loading
    ProductionConfig.

    Raises ValueError naming the first setting that is missing or unsafe.
    """
    if app.config.get("SECRET_KEY") in (None, "", _PLACEHOLDER_SECRET):
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production."
        )

    currency = app.config.get("DEFAULT_CURRENCY", "")
    if len(currency) != 3 or not currency.isalpha():
        raise ValueError(
            f"DEFAULT_CURRENCY must be a 3-letter currency code, got {currency!r}."
        )


config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}
