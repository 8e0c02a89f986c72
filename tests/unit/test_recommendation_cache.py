"""Unit tests for the content-keyed recommendation cache."""

from __future__ import annotations

import pytest

from src.models.book import RatedBook
from src.models.recommendation import GenerationSource, Recommendation, RecommendationSource
from src.providers.store.memory_store import MemoryKeyValueStore
from src.services.recommendation_cache import (
    EMPTY_BOOKS_HASH,
    RecommendationCache,
    cache_key,
    compute_books_hash,
)

TTL = 3600


def _recs() -> list[Recommendation]:
    return [
        Recommendation(title="Sabriel", author="Garth Nix", reason="Magic.", score=95,
                       source=RecommendationSource.PROVIDER, extra={"year": 1995}),
        Recommendation(title="Scythe", author="Neal Shusterman", score=90,
                       source=RecommendationSource.PROVIDER),
    ]


@pytest.fixture
def cache(store: MemoryKeyValueStore, clock) -> RecommendationCache:
    return RecommendationCache(store, ttl_seconds=TTL, clock=clock)


# ======================================================================
# Content hash
# ======================================================================


class TestBooksHash:
    def test_order_invariant(self, sample_books: list[RatedBook]) -> None:
        assert compute_books_hash(sample_books) == compute_books_hash(list(reversed(sample_books)))

    def test_rating_change_changes_hash(self) -> None:
        a = [RatedBook(id=1, title="A", rating=4)]
        b = [RatedBook(id=1, title="A", rating=5)]
        assert compute_books_hash(a) != compute_books_hash(b)

    def test_empty_list_hashes_to_literal(self) -> None:
        assert compute_books_hash([]) == EMPTY_BOOKS_HASH == "empty"

    def test_title_does_not_affect_hash(self) -> None:
        a = [RatedBook(id=1, title="Old title", rating=4)]
        b = [RatedBook(id=1, title="New title", rating=4)]
        assert compute_books_hash(a) == compute_books_hash(b)

    def test_unrated_counts_as_zero(self) -> None:
        assert len(compute_books_hash([RatedBook(id="x", title="A")])) == 16


# ======================================================================
# Expiry
# ======================================================================


class TestCacheExpiry:
    @pytest.mark.asyncio
    async def test_hit_just_before_ttl(self, cache: RecommendationCache, clock) -> None:
        await cache.put("u1", "h1", _recs())
        clock.advance(TTL - 0.001)

        entry = await cache.get("u1", "h1")

        assert entry is not None
        assert [r.title for r in entry.recommendations] == ["Sabriel", "Scythe"]
        assert entry.recommendations[0].extra == {"year": 1995}

    @pytest.mark.asyncio
    async def test_miss_just_after_ttl_and_entry_removed(
        self, cache: RecommendationCache, store: MemoryKeyValueStore, clock
    ) -> None:
        await cache.put("u1", "h1", _recs())
        clock.advance(TTL + 0.001)

        assert await cache.get("u1", "h1") is None
        assert await store.exists(cache_key("u1", "h1")) is False

    @pytest.mark.asyncio
    async def test_reads_do_not_extend_lifetime(self, cache: RecommendationCache, clock) -> None:
        await cache.put("u1", "h1", _recs())
        clock.advance(TTL - 10)
        assert await cache.get("u1", "h1") is not None
        clock.advance(20)
        assert await cache.get("u1", "h1") is None


# ======================================================================
# Keys and overwrite
# ======================================================================


class TestCacheKeys:
    @pytest.mark.asyncio
    async def test_write_replaces_previous_entry(self, cache: RecommendationCache, clock) -> None:
        await cache.put("u1", "h1", _recs())
        clock.advance(100)
        await cache.put("u1", "h1", _recs()[:1], GenerationSource.FALLBACK)

        entry = await cache.get("u1", "h1")
        assert len(entry.recommendations) == 1
        assert entry.source == GenerationSource.FALLBACK
        assert entry.timestamp == clock()

    @pytest.mark.asyncio
    async def test_entries_namespaced_by_user_and_hash(self, cache: RecommendationCache) -> None:
        await cache.put("u1", "h1", _recs())
        assert await cache.get("u2", "h1") is None
        assert await cache.get("u1", "h2") is None

    @pytest.mark.asyncio
    async def test_missing_entry(self, cache: RecommendationCache) -> None:
        assert await cache.get("u1", "nope") is None
