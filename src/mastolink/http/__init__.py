# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP transport exports."""

from .adapters import BytesBody, StubHttpClient, StubResponse
from .client import HttpClient, create_default_http_client
from .headers import header_value, normalize_headers
from .httpx_client import HttpxBody, HttpxClient
from .models import BodyHandle, Headers, HttpRequest, HttpResponse
from .url import (
    build_endpoint_url,
    build_query_string,
    encode_form,
    instance_base_url,
    instance_host,
    with_query,
)

__all__ = [
    "BodyHandle",
    "BytesBody",
    "Headers",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpxBody",
    "HttpxClient",
    "StubHttpClient",
    "StubResponse",
    "build_endpoint_url",
    "build_query_string",
    "encode_form",
    "header_value",
    "instance_base_url",
    "instance_host",
    "normalize_headers",
    "with_query",
]
