"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    audit_logging_enabled: bool = True
    audit_write_timeout_seconds: float = 2.0
    audit_write_workers: int = 4
    audit_write_max_pending: int = 8
    audit_ignored_fields: str = "updated_at,updatedAt,created_at,createdAt"
    max_query_limit: int = 500
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_ignored_fields(raw: str | None) -> frozenset[str]:
    """Parse the comma-separated housekeeping fields excluded from diffs."""
    if raw is None:
        return frozenset()
    return frozenset(chunk.strip() for chunk in raw.split(",") if chunk.strip())
