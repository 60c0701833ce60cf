# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
import threading
from urllib.parse import parse_qs, urlsplit

import pytest

from mastolink.client import ApiClient
from mastolink.config import OAuthSettings
from mastolink.errors import InvalidGrant, MalformedPayload, TransportError, Unauthorized, Uninitialized
from mastolink.http.adapters import StubHttpClient
from mastolink.models import Credential, RegisteredApp
from mastolink.registry import AppRegistry
from mastolink.stores import MemoryAppStore, MemoryCredentialStore

BASE = "https://example.social"
APP_PAYLOAD = {"id": "7", "name": "mastolink", "client_id": "cid", "client_secret": "secret"}


def make_client(stub, registry=None):
    return ApiClient(
        http_client_factory=lambda: stub,
        oauth_settings=OAuthSettings(application_name="mastolink", website="https://mastolink.example", scope="read write follow"),
        registry=registry or AppRegistry(),
    )


@pytest.mark.asyncio
async def test_register_app_posts_registration_form():
    stub = StubHttpClient()
    stub.add(f"{BASE}/api/v1/apps", APP_PAYLOAD, method="POST")
    client = make_client(stub)

    app = await client.register_app("example.social")

    assert app.client_id == "cid"
    assert app.client_secret == "secret"
    form = parse_qs(stub.requests[0].body.decode("ascii"))
    assert form == {
        "client_name": ["mastolink"],
        "redirect_uris": ["urn:ietf:wg:oauth:2.0:oob"],
        "scopes": ["read write follow"],
        "website": ["https://mastolink.example"],
    }


@pytest.mark.asyncio
async def test_register_app_omits_website_when_not_configured():
    stub = StubHttpClient()
    stub.add(f"{BASE}/api/v1/apps", APP_PAYLOAD, method="POST")
    client = ApiClient(
        http_client_factory=lambda: stub,
        oauth_settings=OAuthSettings(website=None),
        registry=AppRegistry(),
    )

    await client.register_app(BASE)

    assert "website" not in parse_qs(stub.requests[0].body.decode("ascii"))


@pytest.mark.asyncio
async def test_register_app_is_cached_per_host():
    stub = StubHttpClient()
    stub.add(f"{BASE}/api/v1/apps", APP_PAYLOAD, method="POST")
    store = MemoryAppStore()
    client = make_client(stub, AppRegistry(store))

    first = await client.register_app("example.social")
    second = await client.register_app("https://EXAMPLE.social/")

    assert first is second
    assert len(stub.requests) == 1
    assert store.apps["example.social"] is first


@pytest.mark.asyncio
async def test_register_app_uses_stored_registration_without_network():
    stub = StubHttpClient()
    stored = RegisteredApp(client_id="stored", client_secret="s")
    client = make_client(stub, AppRegistry(MemoryAppStore({"example.social": stored})))

    assert await client.register_app("example.social") is stored
    assert stub.requests == []


@pytest.mark.asyncio
async def test_concurrent_first_registration_makes_one_call():
    stub = StubHttpClient()
    stub.add(f"{BASE}/api/v1/apps", APP_PAYLOAD, method="POST")
    client = make_client(stub)

    first, second = await asyncio.gather(
        client.register_app("example.social"),
        client.register_app("example.social"),
    )

    assert first is second
    assert len(stub.requests) == 1


@pytest.mark.asyncio
async def test_failed_registration_is_not_cached():
    stub = StubHttpClient()
    stub.add(f"{BASE}/api/v1/apps", content="<html>maintenance</html>", method="POST")
    registry = AppRegistry()
    client = make_client(stub, registry)

    with pytest.raises(MalformedPayload):
        await client.register_app("example.social")

    assert registry.get("example.social") is None
    assert stub.bodies[0].released is True


def test_build_authorization_uri_is_deterministic():
    client = make_client(StubHttpClient())

    url = client.build_authorization_uri("example.social", "cid", "read write follow")

    assert url == (
        "https://example.social/oauth/authorize"
        "?response_type=code&client_id=cid&redirect_uri=urn:ietf:wg:oauth:2.0:oob&scope=read+write+follow"
    )
    assert urlsplit(url).query == "response_type=code&client_id=cid&redirect_uri=urn:ietf:wg:oauth:2.0:oob&scope=read+write+follow"


def test_build_authorization_uri_defaults_scope_and_force_login():
    client = make_client(StubHttpClient())

    url = client.build_authorization_uri(BASE, "cid", force_login=True)

    assert urlsplit(url).query.endswith("&force_login=true&scope=read+write+follow")


@pytest.mark.asyncio
async def test_exchange_token_returns_access_token():
    stub = StubHttpClient()
    stub.add(f"{BASE}/oauth/token", {"access_token": "abc"}, method="POST")
    client = make_client(stub)

    token = await client.exchange_token("example.social", "cid", "secret", "the-code")

    assert token == "abc"
    form = parse_qs(stub.requests[0].body.decode("ascii"))
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["the-code"]
    assert form["client_id"] == ["cid"]
    assert form["client_secret"] == ["secret"]
    assert form["redirect_uri"] == ["urn:ietf:wg:oauth:2.0:oob"]
    assert stub.bodies[0].released is True


@pytest.mark.asyncio
async def test_exchange_token_invalid_code_raises_invalid_grant():
    stub = StubHttpClient()
    stub.add(f"{BASE}/oauth/token", {"error": "invalid_grant"}, status_code=401, method="POST")
    client = make_client(stub)

    with pytest.raises(InvalidGrant):
        await client.exchange_token("example.social", "cid", "secret", "expired")

    assert stub.bodies[0].released is True


@pytest.mark.asyncio
async def test_exchange_token_network_failure_is_transport_error():
    stub = StubHttpClient()
    stub.add_error(f"{BASE}/oauth/token", TransportError("timed out"))
    client = make_client(stub)

    with pytest.raises(TransportError):
        await client.exchange_token("example.social", "cid", "secret", "code")


def _stub_verified_account(stub):
    stub.add(f"{BASE}/api/v1/accounts/verify_credentials", {"id": "42", "username": "alice", "acct": "alice"})
    stub.add(f"{BASE}/api/v1/instance", {"uri": "example.social", "title": "Example", "version": "4.2.0"})


@pytest.mark.asyncio
async def test_verify_and_build_credential():
    stub = StubHttpClient()
    _stub_verified_account(stub)
    client = make_client(stub)

    credential = await client.verify_and_build_credential("example.social", "tok")

    assert credential == Credential(
        instance_uri="https://example.social",
        user_id="42",
        username="alice@example.social",
        access_token="tok",
    )
    assert [r.headers["Authorization"] for r in stub.requests] == ["Bearer tok", "Bearer tok"]
    assert all(body.released for body in stub.bodies)
    assert "tok" not in repr(credential)


@pytest.mark.asyncio
async def test_verify_rejected_token_raises_unauthorized():
    stub = StubHttpClient()
    stub.add(
        f"{BASE}/api/v1/accounts/verify_credentials",
        {"error": "The access token is invalid"},
        status_code=401,
        headers={"WWW-Authenticate": 'Bearer realm="Doorkeeper", error="invalid_token"'},
    )
    client = make_client(stub)

    with pytest.raises(Unauthorized) as excinfo:
        await client.verify_and_build_credential("example.social", "revoked")

    assert excinfo.value.error_code == "invalid_token"
    assert len(stub.requests) == 1


@pytest.mark.asyncio
async def test_authenticated_access_before_initialize_fails_fast():
    stub = StubHttpClient()
    client = make_client(stub)

    assert client.initialized is False
    with pytest.raises(Uninitialized):
        client.api
    with pytest.raises(Uninitialized):
        await client.verify_credentials()
    assert stub.requests == []


@pytest.mark.asyncio
async def test_initialize_binds_credential():
    stub = StubHttpClient()
    _stub_verified_account(stub)
    client = make_client(stub)
    credential = Credential(instance_uri=BASE, user_id="42", username="alice@example.social", access_token="tok")

    async with client:
        await client.initialize(credential)
        account = await client.verify_credentials()

        assert client.initialized is True
        assert client.user_id == "42"
        assert client.username == "alice@example.social"
        assert account.username == "alice"
        assert stub.requests[0].headers["Authorization"] == "Bearer tok"

    assert client.initialized is False
    assert stub.closed is True


@pytest.mark.asyncio
async def test_initialize_from_store():
    stub = StubHttpClient()
    client = make_client(stub)
    store = MemoryCredentialStore()

    with pytest.raises(Uninitialized):
        await client.initialize_from_store(store, "alice@example.social")

    credential = Credential(instance_uri=BASE, user_id="42", username="alice@example.social", access_token="tok")
    store.save_credential(credential)
    loaded = await client.initialize_from_store(store, "alice@example.social")

    assert loaded is credential
    assert client.api.instance_uri == BASE
    await client.close()


@pytest.mark.asyncio
async def test_full_flow_end_to_end():
    stub = StubHttpClient()
    stub.add(f"{BASE}/api/v1/apps", APP_PAYLOAD, method="POST")
    stub.add(f"{BASE}/oauth/token", {"access_token": "abc", "token_type": "Bearer", "scope": "read write follow", "created_at": 1}, method="POST")
    _stub_verified_account(stub)
    client = make_client(stub)

    app = await client.register_app("example.social")
    url = client.build_authorization_uri("example.social", app.client_id)
    token = await client.exchange_token("example.social", app.client_id, app.client_secret, "code")
    credential = await client.verify_and_build_credential("example.social", token)
    await client.initialize(credential)

    assert "client_id=cid" in url
    assert credential.access_token == "abc"
    assert client.username == "alice@example.social"
    assert all(body.released for body in stub.bodies)
    await client.close()


def test_registry_shared_across_event_loops_stays_consistent():
    registry = AppRegistry()
    calls = []

    async def register():
        calls.append(threading.get_ident())
        await asyncio.sleep(0.01)
        return RegisteredApp(client_id=f"cid-{len(calls)}", client_secret="s")

    results = []
    threads = [
        threading.Thread(target=lambda: results.append(asyncio.run(registry.get_or_register("example.social", register))))
        for _ in range(2)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    # Each loop registers on its own; the table keeps exactly one of them.
    assert 1 <= len(calls) <= 2
    assert registry.get("example.social") in results
    assert registry.store.load_app("example.social") is registry.get("example.social")
