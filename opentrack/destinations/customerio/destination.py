"""
Customer.io destination.

Talks to the Customer.io Track API over httpx with HTTP basic auth
(site id / API key). Every request is retried through the shared
RetryExecutor with Customer.io's 16 second backoff cap.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from opentrack.delivery.retry import RetryExecutor, RetryPolicy
from opentrack.destinations.base import Destination
from opentrack.destinations.customerio.errors import CustomerioErrorClassifier
from opentrack.destinations.customerio.region import CustomerioRegion, RegionManager, parse_region
from opentrack.destinations.customerio.transformer import (
    CustomerEvent,
    group_attributes,
    group_joined_event,
    transform_alias,
    transform_group,
    transform_identify,
    transform_page,
    transform_track,
)
from opentrack.events.schemas import AliasEvent, GroupEvent, IdentifyEvent, PageEvent, TrackEvent
from opentrack.exceptions import ConfigurationError, ErrorKind

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@dataclass
class CustomerioConfig:
    """Customer.io credentials and transport settings."""

    site_id: str
    api_key: str = field(repr=False)
    region: CustomerioRegion = CustomerioRegion.US
    timeout_seconds: float = 10.0
    retry_attempts: int = 3
    max_retry_delay_seconds: float = 16.0

    def __post_init__(self) -> None:
        if not self.site_id:
            raise ConfigurationError("siteId is required", setting="CUSTOMERIO_SITE_ID")
        if not self.api_key:
            raise ConfigurationError("apiKey is required", setting="CUSTOMERIO_API_KEY")
        self.region = parse_region(self.region)

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "CustomerioConfig":
        return cls(
            site_id=config.get("site_id", ""),
            api_key=config.get("api_key", ""),
            region=parse_region(config.get("region")),
            timeout_seconds=config.get("timeout_seconds", 10.0),
            retry_attempts=config.get("retry_attempts", 3),
        )


def generate_anonymous_id() -> str:
    return f"anon_{uuid.uuid4().hex[:9]}_{int(time.time() * 1000)}"


def _customer_path(customer_id: str) -> str:
    return f"{API_PREFIX}/customers/{quote(customer_id, safe='')}"


class CustomerioDestination(Destination):
    """Forwards Segment calls to Customer.io people and events."""

    name = "Customer.io"

    def __init__(
        self,
        config: CustomerioConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryExecutor | None = None,
    ):
        """
        Initialize the destination.

        Args:
            config: Customer.io configuration
            transport: httpx transport override (tests use httpx.MockTransport)
            retry: Retry executor override
        """
        self.config = config
        self.region_manager = RegionManager(config.region)
        self.classifier = CustomerioErrorClassifier()
        self.retry = retry or RetryExecutor(
            self.classifier,
            RetryPolicy(
                max_retries=config.retry_attempts,
                max_delay_seconds=config.max_retry_delay_seconds,
            ),
        )
        self._client = httpx.AsyncClient(
            base_url=self.region_manager.get_api_url(),
            auth=(config.site_id, config.api_key),
            timeout=config.timeout_seconds,
            transport=transport,
        )

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _request(self, method: str, path: str, payload: dict[str, Any]) -> httpx.Response:
        response = await self._client.request(method, path, json=payload)
        response.raise_for_status()
        return response

    async def _send(self, method: str, path: str, payload: dict[str, Any]) -> None:
        await self.retry.execute(lambda: self._request(method, path, payload))

    async def _send_event(self, event: CustomerEvent, anonymous_id: str | None) -> None:
        body = {"name": event.name, "data": event.data}
        if event.id:
            await self._send("POST", f"{_customer_path(event.id)}/events", body)
        else:
            body["anonymous_id"] = anonymous_id or generate_anonymous_id()
            await self._send("POST", f"{API_PREFIX}/events", body)

    # =========================================================================
    # SEGMENT CALLS
    # =========================================================================

    async def identify(self, event: IdentifyEvent) -> None:
        update = transform_identify(event)
        await self._send("PUT", _customer_path(update.id), update.traits)

    async def track(self, event: TrackEvent) -> None:
        await self._send_event(transform_track(event), event.anonymous_id)

    async def page(self, event: PageEvent) -> None:
        page_event = transform_page(event)
        await self._send_event(page_event, event.anonymous_id)

        url = page_event.data.get("url")
        if page_event.id and url:
            await self._send(
                "POST",
                f"{_customer_path(page_event.id)}/events",
                {"type": "page", "name": str(url)},
            )

    async def group(self, event: GroupEvent) -> None:
        membership = transform_group(event)
        attributes = group_attributes(membership, joined_at=int(time.time()))

        await self._send("PUT", _customer_path(membership.id), attributes)
        await self._send_event(group_joined_event(membership), None)

    async def alias(self, event: AliasEvent) -> None:
        merge = transform_alias(event)
        await self._send(
            "POST",
            f"{API_PREFIX}/merge_customers",
            {
                "primary": {merge.primary_type: merge.primary_id},
                "secondary": {merge.secondary_type: merge.secondary_id},
            },
        )

    # =========================================================================
    # ADMIN
    # =========================================================================

    def set_region(self, region: CustomerioRegion | str) -> None:
        """Switch data centers; subsequent requests go to the new region."""
        self.region_manager.set_region(region)
        self.config.region = self.region_manager.region
        self._client.base_url = httpx.URL(self.region_manager.get_api_url())
        logger.info(f"Customer.io region set to {self.config.region.value}")

    async def test_connection(self) -> bool:
        """
        Check the credentials with a throwaway identify.

        Only authentication and authorization failures count as a failed
        connection; other errors mean the API was reached.
        """
        test_user = f"test_user_{int(time.time() * 1000)}"
        try:
            await self._request("PUT", _customer_path(test_user), {"email": "test@example.com", "test": True})
        except Exception as e:
            error = self.classifier.classify(e)
            logger.warning(f"Customer.io connection test failed: {error.message}")
            return error.kind not in (ErrorKind.AUTHENTICATION, ErrorKind.AUTHORIZATION)
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
