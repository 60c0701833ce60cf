# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclass exports for mastolink."""

from .account import Account, Credential, Instance
from .oauth import AccessToken, RegisteredApp

__all__ = [
    "AccessToken",
    "Account",
    "Credential",
    "Instance",
    "RegisteredApp",
]
