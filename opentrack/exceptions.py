"""
Module: exceptions

Purpose: Domain-specific exception hierarchy for the event delivery core.

All exceptions include context information. Delivery failures carry a kind and
a retryability flag so the retry executor and the router can act on them
without inspecting transport-specific error types.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Classified failure kinds for destination deliveries."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"
    UNKNOWN_PAYLOAD_TYPE = "unknown_payload_type"


class OpenTrackError(Exception):
    """Base exception for all OpenTrack errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


class ConfigurationError(OpenTrackError):
    """Raised when destination configuration is missing or malformed."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if setting is not None:
            ctx["setting"] = setting
        super().__init__(message, context=ctx)
        self.setting = setting


class SchemaConflictError(OpenTrackError):
    """Raised by a warehouse store when a dataset or table being created already exists."""

    def __init__(
        self,
        message: str,
        *,
        dataset_id: str,
        table_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["dataset_id"] = dataset_id
        if table_id is not None:
            ctx["table_id"] = table_id
        super().__init__(message, context=ctx)
        self.dataset_id = dataset_id
        self.table_id = table_id


# =============================================================================
# DELIVERY ERRORS
# =============================================================================


class DeliveryError(OpenTrackError):
    """A classified destination failure."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        destination: str | None = None,
        is_retryable: bool | None = None,
        response: Any = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["kind"] = self.kind.value
        if status_code is not None:
            ctx["status_code"] = status_code
        if code is not None:
            ctx["code"] = code
        if destination is not None:
            ctx["destination"] = destination
        super().__init__(message, context=ctx)
        self.status_code = status_code
        self.code = code
        self.destination = destination
        self.response = response
        self.is_retryable = self.retryable if is_retryable is None else is_retryable


class PayloadValidationError(DeliveryError):
    """Destination rejected the payload as malformed (HTTP 400)."""

    kind = ErrorKind.VALIDATION


class AuthenticationError(DeliveryError):
    """Destination rejected the credentials (HTTP 401)."""

    kind = ErrorKind.AUTHENTICATION


class AuthorizationError(DeliveryError):
    """Credentials lack permission for the operation (HTTP 403)."""

    kind = ErrorKind.AUTHORIZATION


class RateLimitError(DeliveryError):
    """Destination is throttling requests (HTTP 429)."""

    kind = ErrorKind.RATE_LIMIT
    retryable = True


class ServerError(DeliveryError):
    """Destination returned a 5xx response."""

    kind = ErrorKind.SERVER
    retryable = True


class NetworkError(DeliveryError):
    """Connection-level failure. DNS failures are created non-retryable."""

    kind = ErrorKind.NETWORK
    retryable = True


class DeliveryTimeoutError(DeliveryError):
    """Destination did not answer within the transport timeout."""

    kind = ErrorKind.TIMEOUT
    retryable = True


class UnknownDeliveryError(DeliveryError):
    """Failure that matches no classification rule."""

    kind = ErrorKind.UNKNOWN


class WarehouseInsertError(PayloadValidationError):
    """Warehouse streaming insert reported per-row errors."""

    def __init__(
        self,
        message: str,
        *,
        row_errors: list[Any] | None = None,
        destination: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if row_errors is not None:
            ctx["row_errors"] = row_errors[:10]  # Truncate for logging
        super().__init__(message, destination=destination, context=ctx)
        self.row_errors = row_errors or []


class UnknownPayloadTypeError(DeliveryError):
    """Raised when an event carries a type tag no destination understands."""

    kind = ErrorKind.UNKNOWN_PAYLOAD_TYPE

    def __init__(
        self,
        message: str,
        *,
        payload_type: Any = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["payload_type"] = payload_type
        super().__init__(message, is_retryable=False, context=ctx)
        self.payload_type = payload_type


ERROR_CLASSES: dict[ErrorKind, type[DeliveryError]] = {
    ErrorKind.VALIDATION: PayloadValidationError,
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.AUTHORIZATION: AuthorizationError,
    ErrorKind.RATE_LIMIT: RateLimitError,
    ErrorKind.SERVER: ServerError,
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.TIMEOUT: DeliveryTimeoutError,
    ErrorKind.UNKNOWN: UnknownDeliveryError,
}
