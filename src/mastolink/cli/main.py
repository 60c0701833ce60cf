# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""mastolink CLI: drive the authorization flow against one instance from a terminal."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable
from typing import Any

from ..client import ApiClient
from ..config import HttpSettings, load_http_settings
from ..errors import MastolinkError, TransportError, Unauthorized
from ..http import create_default_http_client
from ..log import mask_secret, setup_logging

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNAUTHORIZED = 2
EXIT_TRANSPORT = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="mastolink: Mastodon app registration and OAuth2 login")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of human-friendly text")
    parser.add_argument(
        "--ignore-ssl-errors",
        action="store_true",
        help="Skip TLS verification (useful for local/self-signed instances)",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: MASTOLINK_LOG_LEVEL or WARNING)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    register = subparsers.add_parser("register", help="Register this client with an instance")
    register.add_argument("instance", help="Instance host or URL, e.g. mastodon.social")

    authorize = subparsers.add_parser("authorize-url", help="Print the URL where the user approves access")
    authorize.add_argument("instance", help="Instance host or URL")
    authorize.add_argument("--client-id", required=True, help="client_id returned by registration")
    authorize.add_argument("--scope", default=None, help="Requested scope (default: read write follow)")

    login = subparsers.add_parser("login", help="Run the full authorization flow interactively")
    login.add_argument("instance", help="Instance host or URL")
    login.add_argument("--code", default=None, help="Authorization code (prompted for when omitted)")
    login.add_argument("--show-token", action="store_true", help="Print the access token unmasked")
    return parser


def _emit(payload: dict[str, Any], as_json: bool) -> None:
    if as_json:
        json.dump(payload, sys.stdout, indent=2, sort_keys=True)
        sys.stdout.write("\n")
        return
    for key, value in payload.items():
        print(f"{key}: {value}")


async def _register(client: ApiClient, args: argparse.Namespace) -> dict[str, Any]:
    app = await client.register_app(args.instance)
    return {"client_id": app.client_id, "client_secret": app.client_secret}


async def _authorize_url(client: ApiClient, args: argparse.Namespace) -> dict[str, Any]:
    return {"authorization_url": client.build_authorization_uri(args.instance, args.client_id, args.scope)}


async def _login(
    client: ApiClient,
    args: argparse.Namespace,
    prompt: Callable[[str], str] = input,
) -> dict[str, Any]:
    app = await client.register_app(args.instance)
    url = client.build_authorization_uri(args.instance, app.client_id)
    code = args.code
    if not code:
        print(f"Open this URL, approve access, then paste the code shown:\n{url}", file=sys.stderr)
        code = prompt("Authorization code: ").strip()
    token = await client.exchange_token(args.instance, app.client_id, app.client_secret, code)
    credential = await client.verify_and_build_credential(args.instance, token)
    payload = credential.to_dict()
    payload["access_token"] = credential.access_token if args.show_token else mask_secret(credential.access_token)
    return payload


_COMMANDS = {
    "register": _register,
    "authorize-url": _authorize_url,
    "login": _login,
}


async def _run(args: argparse.Namespace, settings: HttpSettings) -> dict[str, Any]:
    async with ApiClient(
        http_client_factory=lambda: create_default_http_client(settings),
        http_settings=settings,
    ) as client:
        return await _COMMANDS[args.command](client, args)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    settings: HttpSettings = load_http_settings()
    if args.ignore_ssl_errors:
        settings.verify_ssl = False

    try:
        payload = asyncio.run(_run(args, settings))
    except Unauthorized as exc:
        print(f"Authorization failed: {exc}", file=sys.stderr)
        return EXIT_UNAUTHORIZED
    except TransportError as exc:
        print(f"{exc.reason}: {exc}", file=sys.stderr)
        return EXIT_TRANSPORT
    except MastolinkError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    _emit(payload, args.json)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
