"""
Webhook destination.
"""

from opentrack.destinations.webhook.config import HttpMethod, WebhookConfig, validate_webhook_config
from opentrack.destinations.webhook.destination import WebhookDestination
from opentrack.destinations.webhook.errors import WebhookErrorClassifier
from opentrack.destinations.webhook.transformer import build_webhook_payload

__all__ = [
    "HttpMethod",
    "WebhookConfig",
    "WebhookDestination",
    "WebhookErrorClassifier",
    "build_webhook_payload",
    "validate_webhook_config",
]
