# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Deferred JSON decoding over a completed HTTP response.

A :class:`DeferredResponse` owns exactly one unread response body. The holder decides
whether to pay for decoding (``materialize``) or to release the body unread (``discard``).
Either way the body is read at most once and released exactly once.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Mapping
from contextlib import suppress
from enum import Enum
from typing import Any, Generic, TypeVar

from ..errors import MalformedPayload, MastolinkError, ResponseDiscarded, TransportError
from ..http.models import Headers, HttpResponse

T = TypeVar("T")

_SNIPPET_BYTES = 200


class ResponseState(str, Enum):
    PENDING = "PENDING"
    MATERIALIZED = "MATERIALIZED"
    FAILED = "FAILED"
    DISCARDED = "DISCARDED"


def _snippet(content: bytes) -> str:
    return content[:_SNIPPET_BYTES].decode("utf-8", errors="replace")


def _target_name(target: Any) -> str:
    return getattr(target, "__name__", repr(target))


def coerce_json(data: Any, target: Any, *, body_snippet: str = "") -> Any:
    """
    Shape-check decoded JSON against ``target``.

    ``target`` may be a model class with ``from_mapping``, a plain JSON type
    (str, int, float, bool, dict, list), or ``Any``/``object`` for the raw value.
    """
    if target is Any or target is object:
        return data

    from_mapping = getattr(target, "from_mapping", None)
    if callable(from_mapping):
        if not isinstance(data, Mapping):
            message = f"Expected a JSON object for {_target_name(target)}, got {type(data).__name__}"
            raise MalformedPayload(message, cause=TypeError(message), body_snippet=body_snippet)
        try:
            return from_mapping(data)
        except (KeyError, TypeError, ValueError) as exc:
            detail = f"missing field {exc}" if isinstance(exc, KeyError) else str(exc)
            raise MalformedPayload(
                f"JSON does not match {_target_name(target)}: {detail}",
                cause=exc,
                body_snippet=body_snippet,
            ) from exc

    if isinstance(target, type):
        # bool is an int subclass; JSON true is not a number.
        if target in (int, float) and isinstance(data, bool):
            pass
        elif target is float and isinstance(data, int):
            return float(data)
        elif isinstance(data, target):
            return data
        message = f"Expected JSON {_target_name(target)}, got {type(data).__name__}"
        raise MalformedPayload(message, cause=TypeError(message), body_snippet=body_snippet)

    raise TypeError(f"Unsupported decode target: {target!r}")


def decode_json(content: bytes, target: Any = Any) -> Any:
    """Decode a JSON body into ``target``, raising MalformedPayload with the parser error attached."""
    body_snippet = _snippet(content)
    try:
        data = json.loads(content)
    except (ValueError, RecursionError) as exc:  # JSONDecodeError, UnicodeDecodeError, nesting too deep
        raise MalformedPayload(f"Response body is not valid JSON: {exc}", cause=exc, body_snippet=body_snippet) from exc
    return coerce_json(data, target, body_snippet=body_snippet)


class DeferredResponse(Generic[T]):
    """
    A completed HTTP response whose JSON body is decoded only on demand.

    - ``materialize()`` reads and decodes the body on the first call and caches the outcome;
      later calls return the same value or raise the same error without touching the body.
    - ``discard()`` releases the body unread. It is idempotent and a no-op once materialized.
    - Used as ``async with``, leaving the block discards a body that is still pending.

    Materializing after a discard raises :class:`ResponseDiscarded`. Any failure while
    reading the body is cached as a :class:`TransportError`; only cancellation leaves the
    handle discarded.

    Dropping a pending handle does not release its body: the pooled connection stays
    checked out until the transport is closed. Hold it with ``async with``, call
    ``discard()``, or pass the call through :func:`ignore_response`.
    """

    def __init__(self, response: HttpResponse, target: type[T] | Any = Any):
        self._response: HttpResponse | None = response
        self._target = target
        self._state = ResponseState.PENDING
        self._value: T | None = None
        self._error: MastolinkError | None = None
        self._lock = asyncio.Lock()
        self.status_code = response.status_code
        self.headers: Headers = dict(response.headers)
        self.url = response.url

    @property
    def state(self) -> ResponseState:
        return self._state

    @property
    def consumed(self) -> bool:
        return self._state is not ResponseState.PENDING

    @property
    def released(self) -> bool:
        return self._response is None

    async def materialize(self) -> T:
        async with self._lock:
            if self._state is ResponseState.MATERIALIZED:
                return self._value  # type: ignore[return-value]
            if self._state is ResponseState.FAILED:
                assert self._error is not None
                raise self._error
            if self._state is ResponseState.DISCARDED:
                raise ResponseDiscarded("Response body was discarded before it was materialized")

            response = self._take()
            try:
                try:
                    content = await response.body.read()
                except MastolinkError:
                    raise
                except Exception as exc:
                    raise TransportError.from_exception(exc) from exc
                value = decode_json(content, self._target)
            except MastolinkError as exc:
                self._state = ResponseState.FAILED
                self._error = exc
                raise
            except BaseException:
                # Cancelled mid-read: the body is gone, so this handle behaves as discarded.
                self._state = ResponseState.DISCARDED
                raise
            finally:
                await self._release(response)

            self._state = ResponseState.MATERIALIZED
            self._value = value
            return value

    async def discard(self) -> None:
        async with self._lock:
            if self._state is not ResponseState.PENDING:
                return
            self._state = ResponseState.DISCARDED
            await self._release(self._take())

    def _take(self) -> HttpResponse:
        response = self._response
        assert response is not None
        self._response = None
        return response

    @staticmethod
    async def _release(response: HttpResponse) -> None:
        with suppress(Exception):
            await response.body.close()

    async def __aenter__(self) -> DeferredResponse[T]:
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.discard()

    def __repr__(self) -> str:
        return f"<DeferredResponse[{_target_name(self._target)}] status={self.status_code} state={self._state.value}>"


async def ignore_response(call: Awaitable[DeferredResponse[Any]]) -> None:
    """Await a call that yields a DeferredResponse and release its body unread."""
    response = await call
    await response.discard()


__all__ = [
    "DeferredResponse",
    "ResponseState",
    "coerce_json",
    "decode_json",
    "ignore_response",
]
