# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json

import httpx
import pytest

from mastolink.api.connection import ApiConnection
from mastolink.config import HttpSettings
from mastolink.errors import ErrorCategory, MalformedPayload, TransportError
from mastolink.http.adapters import StubHttpClient
from mastolink.http.headers import header_value, normalize_headers
from mastolink.http.httpx_client import HttpxClient
from mastolink.http.models import HttpRequest
from mastolink.http.url import build_endpoint_url, build_query_string, encode_form, instance_base_url, instance_host, with_query


def make_httpx_client(handler, **settings):
    transport = httpx.MockTransport(handler)
    return HttpxClient(HttpSettings(**settings), client=httpx.AsyncClient(transport=transport))


@pytest.mark.asyncio
async def test_httpx_client_returns_unread_body():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"uri": "example.social"}, headers={"X-Request-Id": "abc"})

    client = make_httpx_client(handler, user_agent="UA/1.0")
    response = await client.send(HttpRequest(url="https://example.social/api/v1/instance", headers={"Accept": "application/json"}))

    assert response.status_code == 200
    assert response.is_success is True
    assert response.headers["x-request-id"] == "abc"
    assert response.url == "https://example.social/api/v1/instance"
    assert seen[0].headers["User-Agent"] == "UA/1.0"
    assert seen[0].headers["Accept"] == "application/json"

    assert json.loads(await response.body.read()) == {"uri": "example.social"}
    await response.body.close()
    await client.close()


@pytest.mark.asyncio
async def test_httpx_client_sends_form_body():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["content"] = request.content
        captured["content_type"] = request.headers["Content-Type"]
        return httpx.Response(200, json={"client_id": "cid", "client_secret": "s"})

    client = make_httpx_client(handler)
    async with ApiConnection("example.social", http_client=client) as connection:
        deferred = await connection.post_lazy("/api/v1/apps", {"client_name": "mastolink", "scopes": "read write"})
        assert await deferred.materialize() == {"client_id": "cid", "client_secret": "s"}

    assert captured["method"] == "POST"
    assert captured["content"] == b"client_name=mastolink&scopes=read+write"
    assert captured["content_type"] == "application/x-www-form-urlencoded"


@pytest.mark.asyncio
async def test_httpx_client_maps_connect_error_to_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_httpx_client(handler)

    with pytest.raises(TransportError) as excinfo:
        await client.send(HttpRequest(url="https://example.social/api/v1/instance"))

    assert excinfo.value.category is ErrorCategory.CONNECTION_ERROR
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_httpx_client_maps_timeout_to_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_httpx_client(handler)

    with pytest.raises(TransportError) as excinfo:
        await client.send(HttpRequest(url="https://example.social/api/v1/instance"))

    assert excinfo.value.category is ErrorCategory.TIMEOUT
    assert excinfo.value.reason == "Network timeout while contacting the instance"


@pytest.mark.asyncio
async def test_httpx_body_enforces_size_limit():
    def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        return httpx.Response(200, content=b'"' + b"a" * 100 + b'"')

    client = make_httpx_client(handler, max_body_bytes=10)
    response = await client.send(HttpRequest(url="https://example.social/huge"))

    with pytest.raises(MalformedPayload, match="exceeds 10 bytes"):
        await response.body.read()
    await response.body.close()


@pytest.mark.asyncio
async def test_httpx_body_read_twice_is_transport_error():
    async def chunks():
        yield b"\"ok\""

    def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        return httpx.Response(200, content=chunks())

    client = make_httpx_client(handler)
    response = await client.send(HttpRequest(url="https://example.social/x"))

    assert await response.body.read() == b"\"ok\""
    with pytest.raises(TransportError) as excinfo:
        await response.body.read()

    assert isinstance(excinfo.value.__cause__, httpx.StreamError)
    await response.body.close()
    await client.close()


@pytest.mark.asyncio
async def test_stub_http_client_without_route_raises_transport_error():
    stub = StubHttpClient()
    with pytest.raises(TransportError):
        await stub.send(HttpRequest(url="https://missing.example/"))
    assert stub.requests[0].url == "https://missing.example/"


def test_instance_address_helpers():
    assert instance_base_url("example.social") == "https://example.social"
    assert instance_base_url(" HTTP://Localhost:3000/ ") == "http://localhost:3000"
    assert instance_host("https://Example.Social/") == "example.social"
    assert instance_host("localhost:3000") == "localhost:3000"
    with pytest.raises(ValueError):
        instance_base_url("")


def test_endpoint_and_query_helpers():
    assert build_endpoint_url("https://example.social", "/api/v1/apps") == "https://example.social/api/v1/apps"
    assert build_query_string({"a": "x y", "b": None, "c": 1}) == "a=x+y&c=1"
    assert build_query_string([("redirect_uri", "urn:ietf:wg:oauth:2.0:oob")], safe=":") == "redirect_uri=urn:ietf:wg:oauth:2.0:oob"
    assert build_query_string([("redirect_uri", "urn:x")]) == "redirect_uri=urn%3Ax"
    assert with_query("https://h/p", {}) == "https://h/p"
    assert with_query("https://h/p?x=1", {"y": 2}) == "https://h/p?x=1&y=2"
    assert encode_form({"scope": "read write"}) == b"scope=read+write"


def test_header_helpers():
    headers = normalize_headers(httpx.Headers({"Content-Type": "application/json", "X-Test": "1"}))
    assert headers == {"content-type": "application/json", "x-test": "1"}
    assert normalize_headers(None) == {}
    assert normalize_headers([("A", "b")]) == {"a": "b"}
    assert header_value({"WWW-Authenticate": " Bearer "}, "www-authenticate") == "Bearer"
    assert header_value({}, "missing", "fallback") == "fallback"
