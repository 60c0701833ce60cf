# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authenticated request plumbing against one instance."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from contextlib import suppress
from typing import Any, TypeVar

from ..config import HttpSettings
from ..errors import ApiError, InvalidGrant, TransportError, Unauthorized
from ..http.client import HttpClient, create_default_http_client
from ..http.headers import header_value
from ..http.models import Headers, HttpRequest, HttpResponse
from ..http.url import Params, build_endpoint_url, encode_form, instance_base_url, instance_host, with_query
from .deferred import DeferredResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# OAuth error codes that mean "these credentials are no good", whatever the status code.
_CREDENTIAL_ERROR_CODES = frozenset({"invalid_token", "invalid_client", "unauthorized_client", "access_denied"})
_ERROR_CODE_RE = re.compile(r"^[a-z][a-z0-9_]*$")
_CHALLENGE_ERROR_RE = re.compile(r'error="(?P<code>[^"]+)"')
_SNIPPET_CHARS = 200


def classify_error_response(status_code: int, content: bytes, headers: Mapping[str, str] | None = None) -> ApiError:
    """
    Turn a non-2xx response into the matching ApiError subclass.

    OAuth endpoints answer ``{"error": "<code>", "error_description": "..."}``; REST endpoints
    answer ``{"error": "<human readable message>"}``. Bearer challenges may carry the code in
    ``WWW-Authenticate`` instead.
    """
    text = content.decode("utf-8", errors="replace").strip()
    try:
        data = json.loads(text) if text else None
    except (ValueError, RecursionError):
        data = None

    error_code: str | None = None
    message: str | None = None
    if isinstance(data, Mapping):
        raw_error = data.get("error")
        raw_description = data.get("error_description")
        if isinstance(raw_error, str) and raw_error:
            if _ERROR_CODE_RE.match(raw_error):
                error_code = raw_error
            else:
                message = raw_error
        if isinstance(raw_description, str) and raw_description:
            message = raw_description

    if error_code is None:
        match = _CHALLENGE_ERROR_RE.search(header_value(headers, "WWW-Authenticate"))
        if match:
            error_code = match.group("code")

    detail = message or error_code or text[:_SNIPPET_CHARS] or "no response body"
    full_message = f"HTTP {status_code}: {detail}"

    if error_code == "invalid_grant":
        return InvalidGrant(full_message, status_code=status_code, error_code=error_code)
    if status_code in (401, 403) or error_code in _CREDENTIAL_ERROR_CODES:
        return Unauthorized(full_message, status_code=status_code, error_code=error_code)
    return ApiError(full_message, status_code=status_code, error_code=error_code)


class ApiConnection:
    """
    Issues GET/POST requests against an instance base address.

    The bearer token, when configured, is attached to every request. GETs are decoded
    immediately; POSTs hand back a :class:`DeferredResponse` so the caller decides whether
    the body is worth decoding. Non-2xx responses never reach the caller as a
    DeferredResponse: they are classified and raised, with the error body released.
    """

    def __init__(
        self,
        instance: str,
        access_token: str | None = None,
        *,
        http_client: HttpClient | None = None,
        settings: HttpSettings | None = None,
    ):
        self.base_url = instance_base_url(instance)
        self.access_token = access_token or None
        self.http_client = http_client or create_default_http_client(settings)

    @property
    def instance_host(self) -> str:
        return instance_host(self.base_url)

    def _headers(self) -> Headers:
        headers: Headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def get(self, path: str, params: Params | None = None, *, target: type[T] | Any = Any) -> T:
        """GET ``path`` and decode the JSON result into ``target`` right away."""
        url = with_query(build_endpoint_url(self.base_url, path), params)
        response = await self._send(HttpRequest(url=url, method="GET", headers=self._headers()))
        async with DeferredResponse(response, target) as deferred:
            return await deferred.materialize()

    async def post_lazy(
        self,
        path: str,
        params: Params | None = None,
        *,
        target: type[T] | Any = Any,
        method: str = "POST",
    ) -> DeferredResponse[T]:
        """Send a form-encoded request and return the response undecoded."""
        headers = self._headers()
        headers["Content-Type"] = FORM_CONTENT_TYPE
        request = HttpRequest(
            url=build_endpoint_url(self.base_url, path),
            method=method.upper(),
            headers=headers,
            body=encode_form(params),
        )
        response = await self._send(request)
        return DeferredResponse(response, target)

    async def _send(self, request: HttpRequest) -> HttpResponse:
        logger.debug("%s %s", request.method, request.url)
        try:
            response = await self.http_client.send(request)
        except TransportError as exc:
            logger.debug("%s %s failed: %s (%s)", request.method, request.url, exc, exc.category.value)
            raise
        logger.debug("%s %s -> %s", request.method, request.url, response.status_code)
        if not response.is_success:
            raise await self._error_from(response)
        return response

    @staticmethod
    async def _error_from(response: HttpResponse) -> ApiError:
        content = b""
        try:
            content = await response.body.read()
        except Exception as exc:
            # The status code alone still classifies the failure.
            logger.debug("Could not read error body (HTTP %s): %s", response.status_code, exc)
        finally:
            with suppress(Exception):
                await response.body.close()
        return classify_error_response(response.status_code, content, response.headers)

    async def close(self) -> None:
        """Release pooled connections held by the transport."""
        await self.http_client.close()

    async def __aenter__(self) -> ApiConnection:
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.close()


__all__ = ["ApiConnection", "FORM_CONTENT_TYPE", "classify_error_response"]
