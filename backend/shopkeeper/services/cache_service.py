# Overview: Request-layer TTL cache; one instance per app, injected through app.extensions.

"""
Request-Layer Cache

- One TTLCache per Flask app, created by create_app() and stored under
  app.extensions["shopkeeper.cache"]. No module-level instance.
- Expired entries are dropped lazily on read, or in bulk by cleanup().
- Only routes use it (product / category listings). The sale engine and the
  lifecycle service never read or write it; routes invalidate after writes.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable

from flask import current_app

EXTENSION_KEY = "shopkeeper.cache"

PRODUCTS_PREFIX = "products:"
CATEGORIES_PREFIX = "categories:"

_MISSING = object()


class TTLCache:
    def __init__(self, default_ttl: float = 60, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._items: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expiry = self._clock() + (self.default_ttl if ttl is None else ttl)
        with self._lock:
            self._items[key] = (value, expiry)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return default
            value, expiry = item
            if self._clock() > expiry:
                del self._items[key]
                return default
            return value

    def get_or_set(self, key: str, factory: Callable[[], Any], ttl: float | None = None) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = factory()
            self.set(key, value, ttl)
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._items if k.startswith(prefix)]
            for k in doomed:
                del self._items[k]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def cleanup(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        with self._lock:
            doomed = [k for k, (_, expiry) in self._items.items() if now > expiry]
            for k in doomed:
                del self._items[k]
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


def init_cache(app) -> TTLCache:
    cache = TTLCache(default_ttl=app.config.get("CACHE_TTL_SECONDS", 60))
    app.extensions[EXTENSION_KEY] = cache
    return cache


def get_cache() -> TTLCache:
    return current_app.extensions[EXTENSION_KEY]
