"""
BigQuery-specific error messages.
"""

from opentrack.delivery.errors import ErrorClassifier
from opentrack.exceptions import ErrorKind


class BigQueryErrorClassifier(ErrorClassifier):
    """Classifies google-api-core and transport errors raised by the BigQuery client."""

    destination = "BigQuery"

    kind_messages = {
        ErrorKind.VALIDATION: "BigQuery rejected the request: {message}",
        ErrorKind.AUTHENTICATION: "Invalid Google Cloud credentials for BigQuery.",
        ErrorKind.AUTHORIZATION: "Access denied. Check the service account's BigQuery permissions.",
        ErrorKind.RATE_LIMIT: "BigQuery quota or rate limit exceeded.",
        ErrorKind.SERVER: "BigQuery server error: {message}",
        ErrorKind.NETWORK: "Network connection error while contacting BigQuery.",
        ErrorKind.TIMEOUT: "Request timeout. BigQuery took too long to respond.",
    }
    dns_message = "DNS Error: BigQuery API hostname not found"
