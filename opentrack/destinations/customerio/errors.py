"""
Customer.io error messages.
"""

from opentrack.delivery.errors import ErrorClassifier
from opentrack.exceptions import ErrorKind


class CustomerioErrorClassifier(ErrorClassifier):
    """Classifies Track API responses and transport failures."""

    destination = "Customer.io"

    kind_messages = {
        ErrorKind.VALIDATION: "Invalid request data: {message}",
        ErrorKind.AUTHENTICATION: "Invalid Customer.io credentials. Check your site ID and API key.",
        ErrorKind.AUTHORIZATION: "Access denied. Check your API permissions.",
        ErrorKind.RATE_LIMIT: "Rate limit exceeded. Please slow down your requests.",
        ErrorKind.SERVER: "Customer.io server error: {message}",
        ErrorKind.NETWORK: "Network connection error. Please check your internet connection.",
        ErrorKind.TIMEOUT: "Request timeout. Customer.io took too long to respond.",
    }
