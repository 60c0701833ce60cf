# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclasses for app registration and token exchange payloads."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

from ._fields import optional_int, optional_str, require_str


@dataclass(frozen=True)
class RegisteredApp:
    """Client credentials issued by ``POST /api/v1/apps``; one per instance host."""

    client_id: str
    client_secret: str = field(repr=False)
    id: str | None = None
    name: str | None = None
    redirect_uri: str | None = None
    website: str | None = None
    vapid_key: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RegisteredApp:
        raw_id = data.get("id")
        return cls(
            client_id=require_str(data, "client_id"),
            client_secret=require_str(data, "client_secret"),
            id=None if raw_id is None else str(raw_id),
            name=optional_str(data, "name"),
            redirect_uri=optional_str(data, "redirect_uri"),
            website=optional_str(data, "website"),
            vapid_key=optional_str(data, "vapid_key"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class AccessToken:
    """Response of ``POST /oauth/token``."""

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    scope: str | None = None
    created_at: int | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AccessToken:
        return cls(
            access_token=require_str(data, "access_token"),
            token_type=optional_str(data, "token_type") or "Bearer",
            scope=optional_str(data, "scope"),
            created_at=optional_int(data, "created_at"),
        )
