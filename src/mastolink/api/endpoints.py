# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""One method per Mastodon endpoint used by the authorization flow."""

from __future__ import annotations

from ..config import HttpSettings
from ..http.client import HttpClient
from ..http.url import build_endpoint_url, with_query
from ..models import AccessToken, Account, Instance, RegisteredApp
from .connection import ApiConnection

APPS_ENDPOINT = "/api/v1/apps"
AUTHORIZE_ENDPOINT = "/oauth/authorize"
TOKEN_ENDPOINT = "/oauth/token"
VERIFY_CREDENTIALS_ENDPOINT = "/api/v1/accounts/verify_credentials"
INSTANCE_ENDPOINT = "/api/v1/instance"


def build_authorize_url(
    base_url: str,
    response_type: str,
    client_id: str,
    redirect_uri: str,
    scope: str | None = None,
    force_login: bool | None = None,
) -> str:
    """
    URL of the page where the user approves access. It is opened in a browser, never fetched.

    Parameter order is fixed; spaces encode as ``+`` and colons stay literal so the
    out-of-band redirect URI reads ``urn:ietf:wg:oauth:2.0:oob``.
    """
    params = {
        "response_type": response_type,
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "force_login": None if force_login is None else ("true" if force_login else "false"),
        "scope": scope,
    }
    return with_query(build_endpoint_url(base_url, AUTHORIZE_ENDPOINT), params, safe=":")


class MastodonApi:
    """Thin endpoint layer over an :class:`ApiConnection`."""

    def __init__(
        self,
        instance: str,
        access_token: str | None = None,
        *,
        connection: ApiConnection | None = None,
        http_client: HttpClient | None = None,
        settings: HttpSettings | None = None,
    ):
        self.connection = connection or ApiConnection(
            instance,
            access_token,
            http_client=http_client,
            settings=settings,
        )

    @property
    def instance_uri(self) -> str:
        return self.connection.base_url

    async def apps_register(
        self,
        client_name: str,
        redirect_uris: str,
        scopes: str | None = None,
        website: str | None = None,
    ) -> RegisteredApp:
        """Register an application and obtain its client_id/client_secret pair."""
        params = {
            "client_name": client_name,
            "redirect_uris": redirect_uris,
            "scopes": scopes,
            "website": website,
        }
        response = await self.connection.post_lazy(APPS_ENDPOINT, params, target=RegisteredApp)
        return await response.materialize()

    def oauth_authorize(
        self,
        response_type: str,
        client_id: str,
        redirect_uri: str,
        scope: str | None = None,
        force_login: bool | None = None,
    ) -> str:
        return build_authorize_url(self.instance_uri, response_type, client_id, redirect_uri, scope, force_login)

    async def oauth_token(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scope: str | None = None,
        code: str | None = None,
        grant_type: str = "authorization_code",
    ) -> AccessToken:
        params = {
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
            "grant_type": grant_type,
            "scope": scope,
            "code": code,
        }
        response = await self.connection.post_lazy(TOKEN_ENDPOINT, params, target=AccessToken)
        return await response.materialize()

    async def accounts_verify_credentials(self) -> Account:
        return await self.connection.get(VERIFY_CREDENTIALS_ENDPOINT, target=Account)

    async def instance(self) -> Instance:
        return await self.connection.get(INSTANCE_ENDPOINT, target=Instance)

    async def close(self) -> None:
        await self.connection.close()

    async def __aenter__(self) -> MastodonApi:
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.close()


__all__ = [
    "APPS_ENDPOINT",
    "AUTHORIZE_ENDPOINT",
    "INSTANCE_ENDPOINT",
    "MastodonApi",
    "TOKEN_ENDPOINT",
    "VERIFY_CREDENTIALS_ENDPOINT",
    "build_authorize_url",
]
