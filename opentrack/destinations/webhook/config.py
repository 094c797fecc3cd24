"""
Webhook destination configuration.
"""

from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from opentrack.exceptions import ConfigurationError


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class WebhookConfig(BaseModel):
    """Validated webhook settings. Accepts snake_case or camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    url: str
    method: HttpMethod = HttpMethod.POST
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float = Field(default=10.0, gt=0)
    retry_attempts: int = Field(default=3, ge=0, le=10)
    # Send the original event alongside the normalized payload
    include_payload: bool = True
    validate_ssl: bool = True

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except (httpx.InvalidURL, TypeError) as e:
            raise ValueError("Must be a valid URL") from e
        if not url.scheme or not url.host:
            raise ValueError("Must be a valid URL")
        return value

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


def validate_webhook_config(config: dict[str, Any] | WebhookConfig) -> WebhookConfig:
    """
    Validate webhook settings.

    Raises:
        ConfigurationError: If any setting is invalid
    """
    if isinstance(config, WebhookConfig):
        config = config.model_dump()
    try:
        return WebhookConfig.model_validate(config)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(
            f"Invalid webhook configuration: {problems}",
            setting="WEBHOOK_URL",
            context={"errors": e.errors(include_url=False)},
        ) from e
