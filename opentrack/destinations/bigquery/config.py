"""
Configuration for the BigQuery destination.
"""

import json
from dataclasses import dataclass, field
from typing import Any

from opentrack.destinations.bigquery.constants import DATASET_LOCATION, SCHEMA_CACHE_TTL_SECONDS
from opentrack.exceptions import ConfigurationError


@dataclass
class BigQueryConfig:
    """Complete configuration for the BigQuery destination."""

    # GCP project and dataset
    project_id: str
    dataset_id: str

    # Create/widen tables automatically before inserting
    auto_table_management: bool = True

    # Service account info (parsed GOOGLE_APPLICATION_CREDENTIALS_JSON); None uses ADC
    credentials_info: dict[str, Any] | None = field(default=None, repr=False)

    location: str = DATASET_LOCATION
    cache_ttl_seconds: float = SCHEMA_CACHE_TTL_SECONDS

    # Retry budget
    retry_attempts: int = 3
    max_retry_delay_seconds: float = 16.0

    def __post_init__(self) -> None:
        if not self.project_id:
            raise ConfigurationError("BigQuery project_id is required", setting="BIGQUERY_PROJECT_ID")
        if not self.dataset_id:
            raise ConfigurationError("BigQuery dataset_id is required", setting="BIGQUERY_DATASET")

    @staticmethod
    def parse_credentials(credentials_json: str) -> dict[str, Any]:
        """Parse a service account JSON string."""
        try:
            info = json.loads(credentials_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                "Invalid GOOGLE_APPLICATION_CREDENTIALS_JSON format",
                setting="GOOGLE_APPLICATION_CREDENTIALS_JSON",
            ) from e
        if not isinstance(info, dict):
            raise ConfigurationError(
                "Invalid GOOGLE_APPLICATION_CREDENTIALS_JSON format",
                setting="GOOGLE_APPLICATION_CREDENTIALS_JSON",
            )
        return info

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "BigQueryConfig":
        """Create config from dictionary (e.g., from JSON)."""
        credentials_info = config.get("credentials_info")
        if credentials_info is None and config.get("credentials_json"):
            credentials_info = cls.parse_credentials(config["credentials_json"])

        return cls(
            project_id=config["project_id"],
            dataset_id=config["dataset_id"],
            auto_table_management=config.get("auto_table_management", True),
            credentials_info=credentials_info,
            location=config.get("location", DATASET_LOCATION),
            cache_ttl_seconds=config.get("cache_ttl_seconds", SCHEMA_CACHE_TTL_SECONDS),
            retry_attempts=config.get("retry_attempts", 3),
            max_retry_delay_seconds=config.get("max_retry_delay_seconds", 16.0),
        )
