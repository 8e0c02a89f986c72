"""Content-keyed cache of generated recommendation sets.

Entries are keyed by ``(user_id, books_hash)`` where the hash depends
only on which books the user has and how they rated them, never on list
order.  An entry is served while ``now - timestamp < ttl`` and is removed
on the first read after that.  The TTL runs from creation; reads do not
extend it.
"""

from __future__ import annotations

import hashlib
import time
from typing import Callable, Iterable

from src.config.settings import Settings
from src.interfaces.kv_store import IKeyValueStore
from src.models.book import RatedBook
from src.models.recommendation import CacheEntry, GenerationSource, Recommendation
from src.utils.logging import get_logger

EMPTY_BOOKS_HASH = "empty"


def compute_books_hash(books: Iterable[RatedBook]) -> str:
    """Return an order-independent digest of the ``(id, rating)`` pairs.

    Unrated books count as rating 0.  An empty shelf hashes to
    ``"empty"``.
    """
    pairs = sorted(f"{book.id}_{book.rating or 0}" for book in books)
    if not pairs:
        return EMPTY_BOOKS_HASH
    return hashlib.sha256("|".join(pairs).encode("utf-8")).hexdigest()[:16]


def cache_key(user_id: str, books_hash: str) -> str:
    return f"recommendations:{user_id}:{books_hash}"


class RecommendationCache:
    """Time-boxed recommendation cache over an :class:`IKeyValueStore`."""

    def __init__(
        self,
        store: IKeyValueStore,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._logger = get_logger(__name__)

    @classmethod
    def from_settings(
        cls,
        store: IKeyValueStore,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ) -> RecommendationCache:
        return cls(store=store, ttl_seconds=settings.recommendation_cache_ttl_seconds, clock=clock)

    async def get(self, user_id: str, books_hash: str) -> CacheEntry | None:
        """Return the live entry for this book set, or ``None``."""
        key = cache_key(user_id, books_hash)
        raw = await self._store.get(key)
        if raw is None:
            self._logger.debug("recommendation_cache_miss", user_id=user_id, books_hash=books_hash)
            return None

        entry = CacheEntry.model_validate(raw)
        age = self._clock() - entry.timestamp
        if age < self._ttl:
            self._logger.info(
                "recommendation_cache_hit",
                user_id=user_id,
                books_hash=books_hash,
                age_seconds=round(age, 1),
            )
            return entry

        await self._store.delete(key)
        self._logger.info("recommendation_cache_expired", user_id=user_id, books_hash=books_hash)
        return None

    async def put(
        self,
        user_id: str,
        books_hash: str,
        recommendations: list[Recommendation],
        source: GenerationSource = GenerationSource.PROVIDER,
    ) -> CacheEntry:
        """Store *recommendations*, replacing any previous entry for this key."""
        entry = CacheEntry(
            recommendations=recommendations,
            timestamp=self._clock(),
            source=source,
        )
        # The store TTL only garbage-collects; freshness is judged from
        # ``timestamp`` in get().
        await self._store.set(
            cache_key(user_id, books_hash),
            entry.model_dump(mode="json"),
            ttl=self._ttl * 2,
        )
        return entry
