"""Abstract base class for the per-user key-value store.

Both the rate limiter (``RateLimitState``) and the recommendation cache
(``CacheEntry``) keep their records here, namespaced by user id and, for
the cache, by content hash.  Implementations may hold data in process
memory, in SQLite, or in any shared cache; business logic never knows
which.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IKeyValueStore(ABC):
    """Contract for a JSON-friendly key-value store with optional TTLs.

    All operations are async so network-backed stores (e.g. Redis) can be
    dropped in without blocking the event loop.  Values are plain Python
    data (dict, list, str, int, float, bool, None).
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value under *key*, or ``None`` if missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store *value* under *key*, replacing any previous value.

        Parameters
        ----------
        key:
            The store key.
        value:
            JSON-serialisable value.
        ttl:
            Time-to-live in seconds.  ``None`` means the entry never
            expires on its own.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*.  A no-op if the key does not exist."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present and not expired."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
