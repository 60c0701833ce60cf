# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Account, instance and credential dataclasses."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ._fields import optional_str, require_id, require_str


@dataclass(frozen=True)
class Account:
    """The subset of ``GET /api/v1/accounts/verify_credentials`` needed to identify a user."""

    id: str
    username: str
    acct: str
    display_name: str = ""
    url: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Account:
        username = require_str(data, "username")
        return cls(
            id=require_id(data, "id"),
            username=username,
            acct=optional_str(data, "acct") or username,
            display_name=optional_str(data, "display_name") or "",
            url=optional_str(data, "url"),
        )


@dataclass(frozen=True)
class Instance:
    """The subset of ``GET /api/v1/instance``; ``uri`` is the instance's domain."""

    uri: str
    title: str = ""
    version: str | None = None
    description: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Instance:
        return cls(
            uri=require_str(data, "uri"),
            title=optional_str(data, "title") or "",
            version=optional_str(data, "version"),
            description=optional_str(data, "description"),
        )


@dataclass(frozen=True)
class Credential:
    """
    A verified login on one instance.

    ``username`` is the display identity ``<account>@<instance domain>``. The token never
    appears in ``repr`` output.
    """

    instance_uri: str
    user_id: str
    username: str
    access_token: str = field(repr=False)

    def to_dict(self, *, include_token: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "instance_uri": self.instance_uri,
            "user_id": self.user_id,
            "username": self.username,
        }
        if include_token:
            data["access_token"] = self.access_token
        return data
