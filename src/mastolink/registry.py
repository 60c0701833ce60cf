# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Per-host cache of registered client applications."""

from __future__ import annotations

import asyncio
import logging
import threading
import weakref
from collections.abc import Awaitable, Callable

from .models import RegisteredApp
from .stores import AppStore, MemoryAppStore

logger = logging.getLogger(__name__)


class AppRegistry:
    """
    Maps instance host -> RegisteredApp, registering at most once per host.

    The table itself is guarded by a thread lock. First registration for a host is
    serialized by a per-host asyncio lock (one set of locks per event loop), so concurrent
    callers for an unseen host share a single network call.

    The at-most-once guarantee holds within one event loop. Threads running their own
    loops against a shared registry may each register an unseen host; the last
    registration stored wins and the table stays consistent.
    """

    def __init__(self, store: AppStore | None = None):
        self.store = store or MemoryAppStore()
        self._apps: dict[str, RegisteredApp] = {}
        self._table_lock = threading.Lock()
        self._host_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, asyncio.Lock]] = (
            weakref.WeakKeyDictionary()
        )

    def get(self, host: str) -> RegisteredApp | None:
        with self._table_lock:
            app = self._apps.get(host)
            if app is None:
                app = self.store.load_app(host)
                if app is not None:
                    self._apps[host] = app
        return app

    def put(self, host: str, app: RegisteredApp) -> None:
        with self._table_lock:
            self._apps[host] = app
            self.store.save_app(host, app)

    def _host_lock(self, host: str) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        with self._table_lock:
            locks = self._host_locks.setdefault(loop, {})
            return locks.setdefault(host, asyncio.Lock())

    async def get_or_register(self, host: str, register: Callable[[], Awaitable[RegisteredApp]]) -> RegisteredApp:
        cached = self.get(host)
        if cached is not None:
            logger.debug("Using cached client registration for %s", host)
            return cached

        async with self._host_lock(host):
            cached = self.get(host)
            if cached is not None:
                return cached
            logger.info("Registering client application with %s", host)
            app = await register()
            self.put(host, app)
            return app


_default_registry = AppRegistry()


def get_default_registry() -> AppRegistry:
    """Process-wide registry shared by ApiClient instances that don't bring their own."""
    return _default_registry


__all__ = ["AppRegistry", "get_default_registry"]
