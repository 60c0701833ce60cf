# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Persistence seams for registered apps and credentials.

The on-disk format belongs to the embedding application; mastolink only needs load/save.
"""

from __future__ import annotations

from typing import Protocol

from .models import Credential, RegisteredApp


class AppStore(Protocol):
    def load_app(self, host: str) -> RegisteredApp | None: ...

    def save_app(self, host: str, app: RegisteredApp) -> None: ...


class CredentialStore(Protocol):
    def load_credential(self, username: str) -> Credential | None: ...

    def save_credential(self, credential: Credential) -> None: ...


class MemoryAppStore(AppStore):
    def __init__(self, apps: dict[str, RegisteredApp] | None = None):
        self.apps: dict[str, RegisteredApp] = dict(apps or {})

    def load_app(self, host: str) -> RegisteredApp | None:
        return self.apps.get(host)

    def save_app(self, host: str, app: RegisteredApp) -> None:
        self.apps[host] = app


class MemoryCredentialStore(CredentialStore):
    def __init__(self) -> None:
        self.credentials: dict[str, Credential] = {}

    def load_credential(self, username: str) -> Credential | None:
        return self.credentials.get(username)

    def save_credential(self, credential: Credential) -> None:
        self.credentials[credential.username] = credential


__all__ = ["AppStore", "CredentialStore", "MemoryAppStore", "MemoryCredentialStore"]
