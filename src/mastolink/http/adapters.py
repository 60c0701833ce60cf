# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-memory transport doubles implementing the HttpClient protocol."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from ..errors import TransportError
from .client import HttpClient
from .headers import normalize_headers
from .models import HttpRequest, HttpResponse

_NO_PAYLOAD = object()


class BytesBody:
    """
    Body handle over a fixed byte string.

    Records how often it was read and whether it was released so callers can assert on
    resource handling. ``read_error`` makes every read raise, to prove a code path never reads.
    """

    def __init__(self, content: bytes | str = b"", *, read_error: BaseException | None = None):
        self._content = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        self._read_error = read_error
        self.reads = 0
        self.close_calls = 0

    @property
    def released(self) -> bool:
        return self.close_calls > 0

    async def read(self) -> bytes:
        if self.released:
            raise RuntimeError("body already released")
        self.reads += 1
        if self._read_error is not None:
            raise self._read_error
        return self._content

    async def close(self) -> None:
        self.close_calls += 1


@dataclass
class StubResponse:
    status_code: int = 200
    content: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    read_error: BaseException | None = None
    error: BaseException | None = None


def _strip_query(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class StubHttpClient(HttpClient):
    """Deterministic, programmable HttpClient for tests."""

    def __init__(self, responses: dict[str, StubResponse] | None = None):
        self._responses: dict[tuple[str | None, str], StubResponse] = {}
        for url, response in (responses or {}).items():
            self._responses[(None, url)] = response
        self.requests: list[HttpRequest] = []
        self.bodies: list[BytesBody] = []
        self.closed = False

    def add(
        self,
        url: str,
        payload: Any = _NO_PAYLOAD,
        *,
        status_code: int = 200,
        content: bytes | str = b"",
        headers: dict[str, str] | None = None,
        method: str | None = None,
        read_error: BaseException | None = None,
    ) -> None:
        if payload is not _NO_PAYLOAD:
            content = json.dumps(payload)
            headers = {"Content-Type": "application/json; charset=utf-8", **(headers or {})}
        raw = content.encode("utf-8") if isinstance(content, str) else content
        self._responses[(method.upper() if method else None, url)] = StubResponse(
            status_code=status_code,
            content=raw,
            headers=normalize_headers(headers),
            read_error=read_error,
        )

    def add_error(self, url: str, error: BaseException, *, method: str | None = None) -> None:
        self._responses[(method.upper() if method else None, url)] = StubResponse(error=error)

    def _lookup(self, request: HttpRequest) -> StubResponse | None:
        method = request.method.upper()
        for url in (request.url, _strip_query(request.url)):
            for key in ((method, url), (None, url)):
                if key in self._responses:
                    return self._responses[key]
        return None

    async def send(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        # Yield like a real transport so concurrent callers interleave.
        await asyncio.sleep(0)
        stub = self._lookup(request)
        if stub is None:
            raise TransportError(f"No stubbed response configured for {request.method} {request.url}")
        if stub.error is not None:
            raise stub.error
        body = BytesBody(stub.content, read_error=stub.read_error)
        self.bodies.append(body)
        return HttpResponse(status_code=stub.status_code, headers=dict(stub.headers), url=request.url, body=body)

    async def close(self) -> None:
        self.closed = True
