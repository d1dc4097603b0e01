"""Session artifacts cached per ``(endpoint, username)`` with a TTL.

Expiry is checked lazily on lookup; there is no background sweep.  Two
concurrent logins for the same key may both succeed, and the later write
wins.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

#: GraphDB tokens are valid for 30 days server-side.
TOKEN_TTL = 24 * 60 * 60.0
#: Mobi cookie sessions.
SESSION_TTL = 30 * 60.0

SessionKey = tuple[str, str]


def session_key(endpoint: str, username: str | None) -> SessionKey:
    """Build the cache key for a backend endpoint and user."""
    return (endpoint.rstrip("/"), username or "anonymous")


class SessionCache:
    """In-memory cache of session artifacts with a fixed TTL."""

    def __init__(
        self,
        ttl: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._store: dict[SessionKey, tuple[float, Any]] = {}

    def get(self, key: SessionKey) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        issued_at, value = entry
        if self._clock() - issued_at >= self.ttl:
            del self._store[key]
            return None
        return value

    def set(self, key: SessionKey, value: Any) -> None:
        self._store[key] = (self._clock(), value)

    def invalidate(self, key: SessionKey | None = None) -> None:
        """Evict *key*, or everything when no key is given."""
        if key is None:
            self._store.clear()
        elif self._store.pop(key, None) is not None:
            logger.info("Evicted cached session for %s@%s", key[1], key[0])

    def acquire(self, key: SessionKey, login: Callable[[], T]) -> T:
        """Return the cached artifact for *key*, logging in when needed."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = login()
        self.set(key, value)
        return value

    def __contains__(self, key: SessionKey) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._store)


class SessionBroker:
    """Owns the session caches of all stateful providers.

    One broker is created per gateway and handed to the providers, so
    several gateways in one process never share logins.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._caches: dict[str, SessionCache] = {}

    def cache(self, name: str, ttl: float) -> SessionCache:
        """Return the cache called *name*, creating it on first use."""
        if name not in self._caches:
            self._caches[name] = SessionCache(ttl, clock=self._clock)
        return self._caches[name]

    def clear(self) -> None:
        for cache in self._caches.values():
            cache.invalidate()
