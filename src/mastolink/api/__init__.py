# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Connection, deferred-response and endpoint layers."""

from .connection import ApiConnection, classify_error_response
from .deferred import DeferredResponse, ResponseState, decode_json, ignore_response
from .endpoints import MastodonApi, build_authorize_url

__all__ = [
    "ApiConnection",
    "DeferredResponse",
    "MastodonApi",
    "ResponseState",
    "build_authorize_url",
    "classify_error_response",
    "decode_json",
    "ignore_response",
]
