# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from collections.abc import Iterator
from enum import Enum

import httpx


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.

    httpx wraps the underlying socket/TLS error, so the whole cause chain is inspected.
    """
    chain = list(_exception_chain(exc))

    if any(isinstance(item, (httpx.TimeoutException, TimeoutError)) for item in chain):
        return ErrorCategory.TIMEOUT

    if any(isinstance(item, (ssl_module.SSLError, ssl_module.CertificateError)) for item in chain):
        return ErrorCategory.SSL_ERROR

    if any(isinstance(item, (socket.gaierror, socket.herror)) for item in chain):
        return ErrorCategory.DNS_ERROR

    if any(
        isinstance(item, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError, ConnectionError))
        for item in chain
    ):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: ErrorCategory | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.TIMEOUT: "Network timeout while contacting the instance",
        ErrorCategory.SSL_ERROR: "TLS/certificate issue",
        ErrorCategory.CONNECTION_ERROR: "Network connectivity issue",
        ErrorCategory.DNS_ERROR: "DNS resolution failure",
        ErrorCategory.UNKNOWN_ERROR: "Network error while contacting the instance",
        None: "",
    }
    return mapping.get(category, "Request failed due to network error")


class MastolinkError(Exception):
    """Base class for every error raised by mastolink."""


class TransportError(MastolinkError):
    """The request never produced an HTTP response (DNS, refused connection, timeout, TLS)."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR):
        super().__init__(message)
        self.category = category

    @property
    def reason(self) -> str:
        return error_category_to_reason(self.category)

    @classmethod
    def from_exception(cls, exc: BaseException) -> TransportError:
        message = str(exc) or type(exc).__name__
        return cls(message, categorize_exception(exc))


class MalformedPayload(MastolinkError):
    """The response body is not valid JSON, or not the JSON shape the caller asked for."""

    def __init__(self, message: str, cause: BaseException | None = None, body_snippet: str = ""):
        super().__init__(message)
        self.cause = cause
        self.body_snippet = body_snippet


class ApiError(MastolinkError):
    """The instance answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class Unauthorized(ApiError):
    """The instance rejected the supplied token or client credentials."""


class InvalidGrant(Unauthorized):
    """The authorization code (or refresh grant) is invalid, expired or already used."""


class Uninitialized(MastolinkError):
    """An authenticated operation was attempted before a credential was configured."""


class ResponseDiscarded(MastolinkError):
    """A deferred response was materialized after it had been discarded."""


__all__ = [
    "ApiError",
    "ErrorCategory",
    "InvalidGrant",
    "MalformedPayload",
    "MastolinkError",
    "ResponseDiscarded",
    "TransportError",
    "Unauthorized",
    "Uninitialized",
    "categorize_exception",
    "error_category_to_reason",
]
