# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Field readers used by the ``from_mapping`` constructors.

They raise ``KeyError``/``TypeError`` on shape mismatches; the deferred-response decoder turns
those into ``MalformedPayload``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def require_str(data: Mapping[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


def require_id(data: Mapping[str, Any], key: str) -> str:
    """Identifiers are strings in current API versions and integers in older ones."""
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise TypeError(f"field {key!r} must be a string or integer id, got {type(value).__name__}")
    return str(value)


def optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


def optional_int(data: Mapping[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"field {key!r} must be an integer, got {type(value).__name__}")
    return value
