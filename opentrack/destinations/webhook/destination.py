"""
Webhook destination.

Sends every Segment call to one configurable HTTP endpoint. Non-2xx responses
raise and are classified; retryable failures back off up to 30 seconds.
"""

import logging
from typing import Any

import httpx

from opentrack.delivery.retry import RetryExecutor, RetryPolicy
from opentrack.destinations.base import Destination
from opentrack.destinations.webhook.config import HttpMethod, WebhookConfig, validate_webhook_config
from opentrack.destinations.webhook.errors import WebhookErrorClassifier
from opentrack.destinations.webhook.transformer import (
    build_test_payload,
    build_webhook_payload,
    to_query_params,
)
from opentrack.events.schemas import AliasEvent, BaseEvent, GroupEvent, IdentifyEvent, PageEvent, TrackEvent

logger = logging.getLogger(__name__)

USER_AGENT = "OpenTrack-Webhook/1.0.0"
MAX_RETRY_DELAY_SECONDS = 30.0


def default_headers(custom: dict[str, str] | None = None) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        **(custom or {}),
    }


async def _log_request(request: httpx.Request) -> None:
    logger.debug(f"[Webhook] Sending {request.method} request to {request.url}")


async def _log_response(response: httpx.Response) -> None:
    logger.debug(f"[Webhook] Received {response.status_code} response from {response.request.url}")


class WebhookDestination(Destination):
    """Posts a normalized JSON envelope for every event to one URL."""

    name = "Webhook"

    def __init__(
        self,
        config: WebhookConfig | dict[str, Any],
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryExecutor | None = None,
    ):
        """
        Initialize the destination.

        Args:
            config: Webhook settings, validated on construction
            transport: httpx transport override (tests use httpx.MockTransport)
            retry: Retry executor override

        Raises:
            ConfigurationError: If the settings are invalid
        """
        self.config = validate_webhook_config(config)
        self.classifier = WebhookErrorClassifier()
        self.retry = retry or RetryExecutor(
            self.classifier,
            RetryPolicy(
                max_retries=self.config.retry_attempts,
                max_delay_seconds=MAX_RETRY_DELAY_SECONDS,
            ),
        )
        self._client = httpx.AsyncClient(
            headers=default_headers(self.config.headers),
            timeout=self.config.timeout_seconds,
            verify=self.config.validate_ssl,
            transport=transport,
            event_hooks={"request": [_log_request], "response": [_log_response]},
        )
        logger.debug(f"Webhook destination targeting {self.config.url}")

    async def _request(self, payload: dict[str, Any]) -> httpx.Response:
        method = self.config.method.value
        if self.config.method is HttpMethod.GET:
            response = await self._client.request(method, self.config.url, params=to_query_params(payload))
        else:
            response = await self._client.request(method, self.config.url, json=payload)
        response.raise_for_status()
        return response

    async def send(self, payload: dict[str, Any]) -> None:
        """Send a prepared payload with retries."""
        await self.retry.execute(lambda: self._request(payload))

    async def _deliver(self, event: BaseEvent) -> None:
        payload = build_webhook_payload(event, include_payload=self.config.include_payload)
        await self.send(payload)

    async def track(self, event: TrackEvent) -> None:
        await self._deliver(event)

    async def identify(self, event: IdentifyEvent) -> None:
        await self._deliver(event)

    async def page(self, event: PageEvent) -> None:
        await self._deliver(event)

    async def group(self, event: GroupEvent) -> None:
        await self._deliver(event)

    async def alias(self, event: AliasEvent) -> None:
        await self._deliver(event)

    # =========================================================================
    # ADMIN
    # =========================================================================

    async def test_connection(self) -> bool:
        """Send a test envelope; any final failure means the endpoint is unusable."""
        try:
            await self.send(build_test_payload())
        except Exception as e:
            logger.error(f"[Webhook] Connection test failed: {e}")
            return False
        return True

    def set_url(self, url: str) -> None:
        """
        Point the destination at a new URL.

        Raises:
            ConfigurationError: If the URL is invalid
        """
        self.config = validate_webhook_config({**self.config.model_dump(), "url": url})

    def set_headers(self, headers: dict[str, str]) -> None:
        """Replace the custom headers sent with every request."""
        self.config = self.config.model_copy(update={"headers": dict(headers)})
        self._client.headers = httpx.Headers(default_headers(headers))

    async def aclose(self) -> None:
        await self._client.aclose()
