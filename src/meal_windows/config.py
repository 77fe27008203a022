"""Application configuration."""

import logging
import os
from datetime import time

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    default_wake_time: str = "07:00"
    default_sleep_time: str = "23:00"
    timezone: str = "UTC"
    scoring_weight_table: str = "equal"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_clock_time(raw: str | None, fallback: time | None) -> time | None:
    """Parse an ``HH:MM`` clock time, falling back when missing or invalid."""
    if raw is None:
        return fallback
    cleaned = raw.strip()
    if not cleaned:
        return fallback
    hours, _, minutes = cleaned.partition(":")
    if not hours.isdigit() or not minutes.isdigit():
        _logger.warning("Invalid clock time", extra={"value": raw})
        return fallback
    try:
        return time(int(hours), int(minutes))
    except ValueError:
        _logger.warning("Invalid clock time", extra={"value": raw})
        return fallback
