# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models shared by transports and the API layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

Headers = dict[str, str]


class BodyHandle(Protocol):
    """One-shot response body: read it once, or close it unread."""

    async def read(self) -> bytes: ...

    async def close(self) -> None: ...


@dataclass
class HttpRequest:
    """Normalized request representation consumed by HttpClient implementations."""

    url: str
    method: str = "GET"
    headers: Headers | None = None
    body: bytes | None = None


@dataclass
class HttpResponse:
    """
    A completed HTTP exchange whose body has not been read yet.

    Whoever holds the response owns ``body`` and must either read or close it.
    """

    status_code: int
    body: BodyHandle
    headers: Headers = field(default_factory=dict)
    url: str | None = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300
