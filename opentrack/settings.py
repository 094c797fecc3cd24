"""
Module: settings

Purpose: Environment configuration for the delivery core.

Key Functions:
- Settings: pydantic-settings model read from environment variables / .env
- get_settings: Cached process-wide settings instance

A destination is configured only when its required variables are present;
see ``opentrack.delivery.registry``.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables (names are case-insensitive)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # BigQuery
    bigquery_project_id: str | None = None
    bigquery_dataset: str | None = None
    # Anything other than "false" keeps auto table management on
    bigquery_auto_table_management: str = "true"
    bigquery_location: str = "US"
    google_application_credentials_json: str | None = Field(default=None, repr=False)
    schema_cache_ttl_seconds: float = Field(default=300.0, gt=0)

    # Customer.io
    customerio_site_id: str | None = None
    customerio_api_key: str | None = Field(default=None, repr=False)
    customerio_region: str = "US"

    # Webhook
    webhook_url: str | None = None
    webhook_method: str = "POST"

    # Runtime
    opentrack_debug: bool = False
    opentrack_env: str = Field(
        default="production",
        validation_alias=AliasChoices("OPENTRACK_ENV", "NODE_ENV"),
    )
    opentrack_log_level: str | None = None

    @property
    def auto_table_management(self) -> bool:
        return self.bigquery_auto_table_management.strip().lower() != "false"

    @property
    def router_logging_enabled(self) -> bool:
        """Router records are on in debug mode or in development."""
        return self.opentrack_debug or self.opentrack_env == "development"

    @property
    def log_level(self) -> str:
        if self.opentrack_log_level:
            return self.opentrack_log_level.upper()
        return "INFO" if self.opentrack_env == "production" else "DEBUG"


@lru_cache
def get_settings() -> Settings:
    return Settings()
