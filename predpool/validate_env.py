"""Fail-fast settings validation, run once when the API starts."""

from __future__ import annotations

from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import Settings

ALLOWED_ENVIRONMENTS = frozenset({"development", "staging", "production"})
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1"})
MIN_PRODUCTION_API_KEY_LENGTH = 32


def _check_database_url(database_url: str, production: bool) -> None:
    parsed = urlparse(database_url)
    if not parsed.scheme:
        raise RuntimeError("DATABASE_URL must be a SQLAlchemy URL.")
    if not production:
        return
    if parsed.hostname in LOCAL_HOSTS or not parsed.hostname:
        raise RuntimeError("DATABASE_URL must point to a real host in production.")
    if parsed.username == "postgres" and parsed.password == "postgres":
        raise RuntimeError("DATABASE_URL must not use default postgres credentials in production.")


def _check_pool_defaults(settings: Settings) -> None:
    if settings.default_matches_required <= 0:
        raise RuntimeError("DEFAULT_MATCHES_REQUIRED must be a positive integer.")
    try:
        ZoneInfo(settings.display_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(
            f"DISPLAY_TIMEZONE {settings.display_timezone!r} is not a known IANA zone."
        ) from exc


def validate_settings(settings: Settings) -> None:
    """Raise ``RuntimeError`` for settings the service must not start with.

    Production additionally requires a non-local database without default
    credentials, an admin API key of at least 32 characters and explicit
    CORS origins that exclude localhost.
    """
    if settings.environment not in ALLOWED_ENVIRONMENTS:
        allowed = ", ".join(sorted(ALLOWED_ENVIRONMENTS))
        raise RuntimeError(f"ENVIRONMENT must be one of: {allowed}.")

    production = settings.environment == "production"
    _check_database_url(settings.database_url, production)
    _check_pool_defaults(settings)

    if not production:
        return
    if not settings.api_key or len(settings.api_key) < MIN_PRODUCTION_API_KEY_LENGTH:
        raise RuntimeError(
            f"API_KEY must be at least {MIN_PRODUCTION_API_KEY_LENGTH} characters in production."
        )
    if not settings.cors_origins:
        raise RuntimeError("ALLOWED_CORS_ORIGINS is required in production.")
    if any(host in settings.cors_origins for host in LOCAL_HOSTS):
        raise RuntimeError("ALLOWED_CORS_ORIGINS must not include localhost in production.")
