"""
Module: errors

Purpose: Classify raw transport/provider failures into DeliveryErrors.

Destinations raise whatever their client raises: httpx errors, google-api-core
errors, OS-level socket errors, or (from older call sites) plain strings and
dicts. ``normalize_error`` reduces all of them to one ``RawErrorInfo`` and
``ErrorClassifier.classify`` applies the status/network rules to it. Only the
kind and retryability drive behaviour; messages are per destination.
"""

import asyncio
import re
import socket
from dataclasses import dataclass
from typing import Any

import httpx

from opentrack.exceptions import ERROR_CLASSES, DeliveryError, ErrorKind

STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.AUTHENTICATION,
    403: ErrorKind.AUTHORIZATION,
    429: ErrorKind.RATE_LIMIT,
    500: ErrorKind.SERVER,
    502: ErrorKind.SERVER,
    503: ErrorKind.SERVER,
    504: ErrorKind.SERVER,
}

DNS_CODES = frozenset({"ENOTFOUND", "EAI_AGAIN"})
CONNECTION_CODES = frozenset({"ECONNREFUSED", "ECONNRESET", "EPIPE", "ECONNABORTED"})
TIMEOUT_CODES = frozenset({"ETIMEDOUT", "ESOCKETTIMEDOUT"})
KNOWN_CODES = DNS_CODES | CONNECTION_CODES | TIMEOUT_CODES

_ERRNO_CODE = re.compile(r"\b(E[A-Z_]{3,})\b")
_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "no address associated with hostname",
    "name resolution",
)
_TIMEOUT_MARKERS = ("timed out", "timeout")

_CONNECTION_EXCEPTIONS = (
    ConnectionRefusedError,
    ConnectionResetError,
    ConnectionAbortedError,
    BrokenPipeError,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)
_TIMEOUT_EXCEPTIONS = (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)


@dataclass(frozen=True)
class RawErrorInfo:
    """Uniform view of any raised or reported failure."""

    message: str
    status_code: int | None = None
    code: str | None = None
    is_dns_failure: bool = False
    is_connection_failure: bool = False
    is_timeout: bool = False
    response: Any = None
    cause: Any = None


# =============================================================================
# NORMALIZATION
# =============================================================================


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _exception_chain(error: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = error
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def _status_from_exception(error: BaseException) -> tuple[int | None, Any]:
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text
        return response.status_code, body

    for attr in ("status_code", "code", "status"):
        status = _int_or_none(getattr(error, attr, None))
        if status is not None and 100 <= status <= 599:
            return status, getattr(error, "response", None)
    return None, None


def _code_from_text(text: str) -> str | None:
    for match in _ERRNO_CODE.finditer(text):
        if match.group(1) in KNOWN_CODES:
            return match.group(1)
    return None


def _info_from_text(
    message: str,
    *,
    status_code: int | None = None,
    code: str | None = None,
    response: Any = None,
    cause: Any = None,
) -> RawErrorInfo:
    code = code or _code_from_text(message)
    lowered = message.lower()
    return RawErrorInfo(
        message=message,
        status_code=status_code,
        code=code,
        is_dns_failure=code in DNS_CODES or any(m in lowered for m in _DNS_MARKERS),
        is_connection_failure=code in CONNECTION_CODES,
        is_timeout=code in TIMEOUT_CODES or any(m in lowered for m in _TIMEOUT_MARKERS),
        response=response,
        cause=cause,
    )


def normalize_error(raw: Any) -> RawErrorInfo:
    """
    Reduce any failure value to a RawErrorInfo.

    Args:
        raw: An exception, an error string, or an error dict
            (``{"statusCode": 500, "message": "..."}``)

    Returns:
        RawErrorInfo describing the failure
    """
    if isinstance(raw, RawErrorInfo):
        return raw

    if isinstance(raw, str):
        return _info_from_text(raw or "Unknown error occurred", cause=raw)

    if isinstance(raw, dict):
        status = None
        for key in ("statusCode", "status_code", "status"):
            status = _int_or_none(raw.get(key))
            if status is not None:
                break
        code = raw.get("code")
        return _info_from_text(
            str(raw.get("message") or "Unknown error occurred"),
            status_code=status,
            code=code if isinstance(code, str) else None,
            response=raw.get("response"),
            cause=raw,
        )

    if isinstance(raw, BaseException):
        status, response = _status_from_exception(raw)
        code = getattr(raw, "code", None)
        info = _info_from_text(
            str(raw) or raw.__class__.__name__,
            status_code=status,
            code=code if isinstance(code, str) else None,
            response=response,
            cause=raw,
        )
        chain = _exception_chain(raw)
        dns = info.is_dns_failure or any(isinstance(e, socket.gaierror) for e in chain)
        timeout = info.is_timeout or any(isinstance(e, _TIMEOUT_EXCEPTIONS) for e in chain)
        connection = info.is_connection_failure or any(
            isinstance(e, _CONNECTION_EXCEPTIONS) for e in chain
        )
        return RawErrorInfo(
            message=info.message,
            status_code=info.status_code,
            code=info.code,
            is_dns_failure=dns,
            is_connection_failure=connection,
            is_timeout=timeout,
            response=info.response,
            cause=raw,
        )

    return RawErrorInfo(message="Unknown error occurred", cause=raw)


# =============================================================================
# CLASSIFICATION
# =============================================================================


class ErrorClassifier:
    """
    Maps raw failures onto the delivery error taxonomy.

    Subclasses set ``destination`` and override the message tables; the
    classification rules themselves are shared.
    """

    destination: str = "destination"

    # Message templates may use {message} and {status_code}
    kind_messages: dict[ErrorKind, str] = {}
    status_messages: dict[int, str] = {}
    dns_message: str | None = None

    def classify(self, raw: Any) -> DeliveryError:
        """Classify a failure. DeliveryErrors pass through unchanged."""
        if isinstance(raw, DeliveryError):
            return raw

        info = normalize_error(raw)
        kind, retryable = self.kind_for(info)
        error_class = ERROR_CLASSES[kind]
        error = error_class(
            self.message_for(kind, info),
            status_code=info.status_code,
            code=info.code,
            destination=self.destination,
            is_retryable=retryable,
            response=info.response,
        )
        if isinstance(info.cause, BaseException):
            error.__cause__ = info.cause
        return error

    def kind_for(self, info: RawErrorInfo) -> tuple[ErrorKind, bool]:
        """Return the (kind, retryable) pair for a normalized failure."""
        if info.status_code is not None:
            kind = STATUS_KINDS.get(info.status_code, ErrorKind.UNKNOWN)
            return kind, ERROR_CLASSES[kind].retryable

        if info.is_dns_failure:
            return ErrorKind.NETWORK, False
        if info.is_timeout:
            return ErrorKind.TIMEOUT, True
        if info.is_connection_failure:
            return ErrorKind.NETWORK, True
        return ErrorKind.UNKNOWN, False

    def message_for(self, kind: ErrorKind, info: RawErrorInfo) -> str:
        template = None
        if info.status_code is None and info.is_dns_failure:
            template = self.dns_message
        if info.status_code is not None:
            template = self.status_messages.get(info.status_code)
        if template is None:
            template = self.kind_messages.get(kind)
        if template is None:
            return info.message
        return template.format(message=info.message, status_code=info.status_code)

    def is_retryable(self, raw: Any) -> bool:
        return self.classify(raw).is_retryable
