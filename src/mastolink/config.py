# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for mastolink."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"mastolink/{__version__} (+https://github.com/mastolink/mastolink)"

# Out-of-band redirect: the instance displays the authorization code instead of redirecting.
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
DEFAULT_SCOPE = "read write follow"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class HttpSettings:
    """HTTP transport defaults."""

    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    allow_redirects: bool = True
    verify_ssl: bool = True
    max_body_bytes: int = 16 * 1024 * 1024
    max_connections: int = 10

    @classmethod
    def from_env(cls) -> "HttpSettings":
        """Create settings from environment variables (evaluated at call time)."""
        max_body_bytes = _int_env("MASTOLINK_HTTP_MAX_BODY_BYTES", cls.max_body_bytes)
        if max_body_bytes <= 0:
            max_body_bytes = cls.max_body_bytes
        max_connections = _int_env("MASTOLINK_HTTP_MAX_CONNECTIONS", cls.max_connections)
        if max_connections <= 0:
            max_connections = cls.max_connections
        return cls(
            timeout=_float_env("MASTOLINK_HTTP_TIMEOUT", cls.timeout),
            user_agent=os.getenv("MASTOLINK_USER_AGENT", cls.user_agent),
            allow_redirects=_bool_env("MASTOLINK_HTTP_REDIRECTS", cls.allow_redirects),
            verify_ssl=_bool_env("MASTOLINK_HTTP_VERIFY_SSL", cls.verify_ssl),
            max_body_bytes=max_body_bytes,
            max_connections=max_connections,
        )


@dataclass
class OAuthSettings:
    """Values sent when registering this client with an instance."""

    application_name: str = "mastolink"
    website: str | None = "https://github.com/mastolink/mastolink"
    scope: str = DEFAULT_SCOPE

    @classmethod
    def from_env(cls) -> "OAuthSettings":
        website = os.getenv("MASTOLINK_APP_WEBSITE", cls.website or "")
        scope = (os.getenv("MASTOLINK_OAUTH_SCOPE") or "").strip() or cls.scope
        return cls(
            application_name=os.getenv("MASTOLINK_APP_NAME", cls.application_name),
            website=website or None,
            scope=scope,
        )


def load_http_settings() -> HttpSettings:
    """Load HTTP settings from environment with sensible defaults."""
    return HttpSettings.from_env()


def load_oauth_settings() -> OAuthSettings:
    """Load app-registration settings from environment."""
    return OAuthSettings.from_env()
