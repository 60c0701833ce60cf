# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level client: OAuth2 authorization-code flow and the logged-in account."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import suppress

from .api.endpoints import MastodonApi, build_authorize_url
from .config import OOB_REDIRECT_URI, HttpSettings, OAuthSettings, load_http_settings, load_oauth_settings
from .errors import Uninitialized
from .http.client import HttpClient, create_default_http_client
from .http.url import instance_base_url, instance_host
from .models import Account, Credential, RegisteredApp
from .registry import AppRegistry, get_default_registry
from .stores import CredentialStore

logger = logging.getLogger(__name__)

HttpClientFactory = Callable[[], HttpClient]


class ApiClient:
    """
    Drives the authorization flow step by step and holds the account it ends in.

    Each flow step is independent and opens a short-lived connection of its own:

    1. ``register_app`` obtains (or reuses) the client id/secret for an instance.
    2. ``build_authorization_uri`` gives the page where the user approves access.
    3. ``exchange_token`` trades the displayed authorization code for an access token.
    4. ``verify_and_build_credential`` checks the token and builds a Credential.

    ``initialize`` then binds the client to a credential; ``api`` raises
    :class:`Uninitialized` until that happens.
    """

    def __init__(
        self,
        *,
        http_client_factory: HttpClientFactory | None = None,
        http_settings: HttpSettings | None = None,
        oauth_settings: OAuthSettings | None = None,
        registry: AppRegistry | None = None,
    ):
        self.http_settings = http_settings or load_http_settings()
        self.oauth_settings = oauth_settings or load_oauth_settings()
        self.registry = registry or get_default_registry()
        self._http_client_factory = http_client_factory or self._default_http_client
        self._api: MastodonApi | None = None
        self.user_id: str | None = None
        self.username = ""

    def _default_http_client(self) -> HttpClient:
        return create_default_http_client(self.http_settings)

    def _open_api(self, instance: str, access_token: str | None = None) -> MastodonApi:
        return MastodonApi(instance, access_token, http_client=self._http_client_factory())

    async def register_app(
        self,
        instance: str,
        client_name: str | None = None,
        redirect_uri: str | None = None,
        scope: str | None = None,
        website: str | None = None,
    ) -> RegisteredApp:
        """Return the client registration for ``instance``, registering on first use only."""
        settings = self.oauth_settings

        async def register() -> RegisteredApp:
            async with self._open_api(instance) as api:
                app = await api.apps_register(
                    client_name or settings.application_name,
                    redirect_uri or OOB_REDIRECT_URI,
                    scope or settings.scope,
                    website if website is not None else settings.website,
                )
            logger.debug("Registered client %s with %s", app.client_id, api.instance_uri)
            return app

        return await self.registry.get_or_register(instance_host(instance), register)

    def build_authorization_uri(
        self,
        instance: str,
        client_id: str,
        scope: str | None = None,
        force_login: bool | None = None,
    ) -> str:
        return build_authorize_url(
            instance_base_url(instance),
            "code",
            client_id,
            OOB_REDIRECT_URI,
            scope or self.oauth_settings.scope,
            force_login,
        )

    async def exchange_token(
        self,
        instance: str,
        client_id: str,
        client_secret: str,
        authorization_code: str,
        scope: str | None = None,
    ) -> str:
        """
        Trade an authorization code for an access token.

        An expired, mistyped or already-used code raises :class:`InvalidGrant`.
        """
        async with self._open_api(instance) as api:
            token = await api.oauth_token(
                client_id,
                client_secret,
                OOB_REDIRECT_URI,
                scope or self.oauth_settings.scope,
                authorization_code,
                "authorization_code",
            )
        return token.access_token

    async def verify_and_build_credential(self, instance: str, access_token: str) -> Credential:
        async with self._open_api(instance, access_token) as api:
            account = await api.accounts_verify_credentials()
            info = await api.instance()
            instance_uri = api.instance_uri
        return Credential(
            instance_uri=instance_uri,
            user_id=account.id,
            username=f"{account.username}@{info.uri}",
            access_token=access_token,
        )

    async def initialize(self, credential: Credential) -> None:
        """Bind this client to a verified credential, replacing any previous one."""
        previous = self._api
        self._api = self._open_api(credential.instance_uri, credential.access_token)
        self.user_id = credential.user_id
        self.username = credential.username
        if previous is not None:
            await previous.close()

    async def initialize_from_store(self, store: CredentialStore, username: str) -> Credential:
        credential = store.load_credential(username)
        if credential is None:
            raise Uninitialized(f"No stored credential for {username}")
        await self.initialize(credential)
        return credential

    @property
    def initialized(self) -> bool:
        return self._api is not None

    @property
    def api(self) -> MastodonApi:
        if self._api is None:
            raise Uninitialized("Client is not initialized with a credential")
        return self._api

    async def verify_credentials(self) -> Account:
        """Re-check the bound credential; raises Unauthorized once the token is revoked."""
        return await self.api.accounts_verify_credentials()

    async def close(self) -> None:
        api, self._api = self._api, None
        if api is not None:
            with suppress(Exception):
                await api.close()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.close()


__all__ = ["ApiClient", "HttpClientFactory"]
