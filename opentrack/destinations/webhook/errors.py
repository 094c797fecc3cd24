"""
Webhook error messages.
"""

from opentrack.delivery.errors import ErrorClassifier, RawErrorInfo
from opentrack.exceptions import ErrorKind


class WebhookErrorClassifier(ErrorClassifier):
    """Classifies webhook endpoint responses and transport failures."""

    destination = "Webhook"

    status_messages = {
        400: "Bad Request: Invalid payload or request format",
        401: "Unauthorized: Invalid authentication credentials",
        403: "Forbidden: Access denied to webhook endpoint",
        404: "Not Found: Webhook endpoint does not exist",
        422: "Unprocessable Entity: Payload validation failed",
        429: "Rate Limited: Too many requests to webhook endpoint",
        500: "Internal Server Error: Webhook endpoint encountered an error",
        502: "Bad Gateway: Webhook endpoint is unreachable",
        503: "Service Unavailable: Webhook endpoint is temporarily down",
        504: "Gateway Timeout: Webhook endpoint took too long to respond",
    }
    kind_messages = {
        ErrorKind.NETWORK: "Connection Refused: Cannot connect to webhook endpoint",
        ErrorKind.TIMEOUT: "Timeout: Webhook endpoint took too long to respond",
    }
    dns_message = "DNS Error: Webhook endpoint hostname not found"

    def message_for(self, kind: ErrorKind, info: RawErrorInfo) -> str:
        if info.status_code is not None and info.status_code not in self.status_messages:
            return f"HTTP {info.status_code}: {info.message}"
        return super().message_for(kind, info)
