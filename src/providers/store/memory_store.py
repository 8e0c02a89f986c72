"""In-memory key-value store using cachetools.TLRUCache.

Simple, fast store suitable for development and single-process
deployments.  Unlike a plain ``TTLCache``, ``TLRUCache`` computes an
expiry per item, so one class serves both the day-long limiter records
and the cache's shorter-lived entries.  Being size bounded, the two
roles get separate instances.  Swap in
:class:`~src.providers.store.sqlite_store.SQLiteKeyValueStore` for state
that must survive restarts.
"""

from __future__ import annotations

import copy
import math
import time
from typing import Any, Callable, NamedTuple

import structlog
from cachetools import TLRUCache

from src.interfaces.kv_store import IKeyValueStore

logger = structlog.get_logger(logger_name=__name__)


class _Item(NamedTuple):
    value: Any
    ttl: float | None


def _time_to_use(_key: str, item: _Item, now: float) -> float:
    if item.ttl is None:
        return math.inf
    return now + item.ttl


class MemoryKeyValueStore(IKeyValueStore):
    """In-memory store backed by ``cachetools.TLRUCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    timer:
        Clock used for expiry, in seconds.  Defaults to
        ``time.monotonic``; tests pass a fake clock.
    """

    def __init__(
        self,
        max_size: int = 10_000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TLRUCache[str, _Item] = TLRUCache(
            maxsize=max_size,
            ttu=_time_to_use,
            timer=timer,
        )

    # ------------------------------------------------------------------
    # IKeyValueStore implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """Return a copy of the value for *key*, or ``None`` if missing/expired."""
        item = self._cache.get(key)
        if item is None:
            logger.debug("store_miss", key=key)
            return None
        logger.debug("store_hit", key=key)
        # Callers mutate what they read (limiter state); keep the stored copy intact.
        return copy.deepcopy(item.value)

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a copy of *value* under *key* with an optional per-item TTL."""
        self._cache[key] = _Item(copy.deepcopy(value), ttl)
        logger.debug("store_set", key=key, ttl=ttl)

    async def delete(self, key: str) -> None:
        """Remove *key* (no-op if absent)."""
        self._cache.pop(key, None)
        logger.debug("store_delete", key=key)

    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present and not expired."""
        return key in self._cache

    def get_provider_name(self) -> str:
        return "memory_store"
