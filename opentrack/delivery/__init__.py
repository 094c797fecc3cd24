"""
Delivery module.

Error classification, retry with backoff, and concurrent fan-out of events to
destinations. The destination registry lives in ``opentrack.delivery.registry``
and is imported from there directly.
"""

from opentrack.delivery.errors import ErrorClassifier, RawErrorInfo, normalize_error
from opentrack.delivery.retry import RetryExecutor, RetryOutcome, RetryPolicy, get_retry_delay
from opentrack.delivery.router import DeliveryOutcome, EventRouter, RouterLogger

__all__ = [
    # Errors
    "ErrorClassifier",
    "RawErrorInfo",
    "normalize_error",
    # Retry
    "RetryExecutor",
    "RetryOutcome",
    "RetryPolicy",
    "get_retry_delay",
    # Routing
    "DeliveryOutcome",
    "EventRouter",
    "RouterLogger",
]
