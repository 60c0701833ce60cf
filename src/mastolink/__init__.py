# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
mastolink package entrypoint.

An asyncio client for the Mastodon API covering app registration, the OAuth2
authorization-code flow and credential verification. Response bodies are wrapped in
DeferredResponse handles so callers choose when (and whether) to decode them, and HTTP
behavior is abstracted behind an injectable client interface.
"""

from .api import ApiConnection, DeferredResponse, MastodonApi, ResponseState, ignore_response
from .client import ApiClient
from .config import OOB_REDIRECT_URI, HttpSettings, OAuthSettings, load_http_settings, load_oauth_settings
from .errors import (
    ApiError,
    ErrorCategory,
    InvalidGrant,
    MalformedPayload,
    MastolinkError,
    ResponseDiscarded,
    TransportError,
    Unauthorized,
    Uninitialized,
)
from .http import HttpClient, HttpRequest, HttpResponse, HttpxClient, create_default_http_client
from .log import setup_logging
from .models import AccessToken, Account, Credential, Instance, RegisteredApp
from .registry import AppRegistry, get_default_registry
from .stores import AppStore, CredentialStore, MemoryAppStore, MemoryCredentialStore
from .version import __version__

__all__ = [
    "AccessToken",
    "Account",
    "ApiClient",
    "ApiConnection",
    "ApiError",
    "AppRegistry",
    "AppStore",
    "Credential",
    "CredentialStore",
    "DeferredResponse",
    "ErrorCategory",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpSettings",
    "HttpxClient",
    "Instance",
    "InvalidGrant",
    "MalformedPayload",
    "MastodonApi",
    "MastolinkError",
    "MemoryAppStore",
    "MemoryCredentialStore",
    "OAuthSettings",
    "OOB_REDIRECT_URI",
    "RegisteredApp",
    "ResponseDiscarded",
    "ResponseState",
    "TransportError",
    "Unauthorized",
    "Uninitialized",
    "create_default_http_client",
    "get_default_registry",
    "ignore_response",
    "load_http_settings",
    "load_oauth_settings",
    "setup_logging",
    "__version__",
]
