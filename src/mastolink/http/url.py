# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers for instance addresses, endpoints and form/query encoding."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit

Params = Mapping[str, object | None] | Iterable[tuple[str, object | None]]


def instance_base_url(instance: str) -> str:
    """
    Normalize an instance host or URL into a base address.

    Example:
      example.social -> https://example.social
      HTTP://Localhost:3000/ -> http://localhost:3000
    """
    raw = str(instance or "").strip()
    if not raw:
        raise ValueError("instance address must not be empty")
    if "://" not in raw:
        raw = f"https://{raw}"
    parts = urlsplit(raw)
    if not parts.netloc:
        raise ValueError(f"invalid instance address: {instance!r}")
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, "", ""))


def instance_host(instance: str) -> str:
    """Return the cache key for an instance: its lowercase host (and port, when given)."""
    return urlsplit(instance_base_url(instance)).netloc


def build_endpoint_url(base_url: str, path: str) -> str:
    """Resolve an absolute endpoint path (``/api/v1/apps``) against an instance base address."""
    base = base_url if base_url.endswith("/") else f"{base_url}/"
    return urljoin(base, path)


def _pairs(params: Params | None) -> list[tuple[str, str]]:
    if not params:
        return []
    items = params.items() if isinstance(params, Mapping) else params
    return [(str(key), str(value)) for key, value in items if value is not None]


def build_query_string(params: Params | None, *, safe: str = "") -> str:
    """
    Encode params in insertion order, dropping None values.

    Spaces become ``+``; characters listed in ``safe`` are kept literal.
    """
    return urlencode(_pairs(params), safe=safe)


def with_query(url: str, params: Params | None, *, safe: str = "") -> str:
    query = build_query_string(params, safe=safe)
    if not query:
        return url
    separator = "&" if urlsplit(url).query else "?"
    return f"{url}{separator}{query}"


def encode_form(params: Params | None) -> bytes:
    """Encode params as an ``application/x-www-form-urlencoded`` body."""
    return build_query_string(params).encode("ascii")


__all__ = [
    "Params",
    "build_endpoint_url",
    "build_query_string",
    "encode_form",
    "instance_base_url",
    "instance_host",
    "with_query",
]
