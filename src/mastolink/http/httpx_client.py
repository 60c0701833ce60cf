# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed HttpClient implementation."""

from __future__ import annotations

import httpx

from ..config import HttpSettings, load_http_settings
from ..errors import MalformedPayload, TransportError
from .client import HttpClient
from .headers import normalize_headers
from .models import HttpRequest, HttpResponse


class HttpxBody:
    """Body handle over a streamed httpx response."""

    def __init__(self, response: httpx.Response, max_body_bytes: int):
        self._response = response
        self._max_body_bytes = max_body_bytes

    async def read(self) -> bytes:
        content = bytearray()
        try:
            async for chunk in self._response.aiter_bytes():
                if len(content) + len(chunk) > self._max_body_bytes:
                    raise MalformedPayload(f"Response body exceeds {self._max_body_bytes} bytes")
                content.extend(chunk)
        except httpx.DecodingError as exc:
            raise MalformedPayload(f"Could not decode response content: {exc}", cause=exc) from exc
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise TransportError.from_exception(exc) from exc
        return bytes(content)

    async def close(self) -> None:
        await self._response.aclose()


class HttpxClient(HttpClient):
    """Asynchronous httpx client wrapper; one connection pool per instance."""

    def __init__(self, settings: HttpSettings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or load_http_settings()
        self._client = client or httpx.AsyncClient(
            follow_redirects=self.settings.allow_redirects,
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
            limits=httpx.Limits(max_connections=self.settings.max_connections),
        )

    async def send(self, request: HttpRequest) -> HttpResponse:
        headers = dict(request.headers or {})
        headers.setdefault("User-Agent", self.settings.user_agent)

        max_body_bytes = self.settings.max_body_bytes
        if max_body_bytes <= 0:
            max_body_bytes = 16 * 1024 * 1024

        try:
            http_request = self._client.build_request(
                request.method,
                request.url,
                headers=headers,
                content=request.body,
            )
            response = await self._client.send(http_request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError.from_exception(exc) from exc

        return HttpResponse(
            status_code=response.status_code,
            headers=normalize_headers(response.headers),
            url=str(response.url),
            body=HttpxBody(response, max_body_bytes),
        )

    async def close(self) -> None:
        await self._client.aclose()
