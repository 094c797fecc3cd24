"""
Module: registry

Purpose: Build the destination list once at startup.

``build_destination_configs`` resolves and validates every destination whose
required settings are present. ``create_destinations`` turns configs into
adapters, and ``create_router`` wires them into an EventRouter.
"""

import logging
from typing import Sequence, Union

from opentrack.delivery.router import EventRouter
from opentrack.destinations.base import Destination
from opentrack.destinations.bigquery.config import BigQueryConfig
from opentrack.destinations.bigquery.destination import BigQueryDestination
from opentrack.destinations.customerio.destination import CustomerioConfig, CustomerioDestination
from opentrack.destinations.customerio.region import parse_region
from opentrack.destinations.webhook.config import WebhookConfig, validate_webhook_config
from opentrack.destinations.webhook.destination import WebhookDestination
from opentrack.settings import Settings, get_settings

logger = logging.getLogger(__name__)

DestinationConfig = Union[BigQueryConfig, CustomerioConfig, WebhookConfig]


def build_bigquery_config(settings: Settings) -> BigQueryConfig | None:
    if not settings.bigquery_project_id or not settings.bigquery_dataset:
        return None

    credentials_info = None
    if settings.google_application_credentials_json:
        credentials_info = BigQueryConfig.parse_credentials(settings.google_application_credentials_json)

    return BigQueryConfig(
        project_id=settings.bigquery_project_id,
        dataset_id=settings.bigquery_dataset,
        auto_table_management=settings.auto_table_management,
        credentials_info=credentials_info,
        location=settings.bigquery_location,
        cache_ttl_seconds=settings.schema_cache_ttl_seconds,
    )


def build_customerio_config(settings: Settings) -> CustomerioConfig | None:
    if not settings.customerio_site_id or not settings.customerio_api_key:
        return None

    return CustomerioConfig(
        site_id=settings.customerio_site_id,
        api_key=settings.customerio_api_key,
        region=parse_region(settings.customerio_region),
    )


def build_webhook_config(settings: Settings) -> WebhookConfig | None:
    if not settings.webhook_url:
        return None

    return validate_webhook_config({"url": settings.webhook_url, "method": settings.webhook_method})


def build_destination_configs(settings: Settings) -> list[DestinationConfig]:
    """
    Resolve every configured destination.

    Raises:
        ConfigurationError: If a destination is configured with invalid values
    """
    builders = (build_bigquery_config, build_customerio_config, build_webhook_config)
    configs = [config for config in (build(settings) for build in builders) if config is not None]
    logger.info(f"Resolved {len(configs)} destination config(s)")
    return configs


def create_destination(config: DestinationConfig) -> Destination:
    if isinstance(config, BigQueryConfig):
        return BigQueryDestination(config)
    if isinstance(config, CustomerioConfig):
        return CustomerioDestination(config)
    if isinstance(config, WebhookConfig):
        return WebhookDestination(config)
    raise TypeError(f"Unsupported destination config: {type(config).__name__}")


def create_destinations(configs: Sequence[DestinationConfig]) -> list[Destination]:
    destinations = [create_destination(config) for config in configs]
    for destination in destinations:
        logger.info(f"Enabled destination: {destination.name}")
    return destinations


def create_router(settings: Settings | None = None) -> EventRouter:
    """Build the router from settings (defaults to the environment)."""
    settings = settings or get_settings()
    destinations = create_destinations(build_destination_configs(settings))
    if not destinations:
        logger.warning("No destinations configured; events will be dropped")
    return EventRouter(destinations, log_enabled=settings.router_logging_enabled)
