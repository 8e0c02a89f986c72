"""Unit tests for the catalog-based fallback recommender."""

from __future__ import annotations

import random

import pytest

from src.config.catalog import FALLBACK_CATALOG
from src.models.book import CatalogBook, RatedBook, ReadingProfile
from src.models.recommendation import RecommendationSource
from src.services.fallback_scorer import FallbackScorer


def _profile(genres: list[str] | None = None, authors: list[str] | None = None) -> ReadingProfile:
    return ReadingProfile(favorite_genres=genres or [], favorite_authors=authors or [])


_SMALL_CATALOG = (
    CatalogBook(title="Dragon Tale", author="Ann Smith", genre="Fantasy", reason="Dragons!"),
    CatalogBook(title="Space Run", author="Bo Lee", genre="Science Fiction"),
    CatalogBook(title="Quiet Town", author="Cy Ray", genre="Mystery"),
    CatalogBook(title="Wand Work", author="Ann Smith", genre="Urban Fantasy"),
)


# ======================================================================
# Genre path
# ======================================================================


class TestGenrePath:
    def test_genre_matches_ranked_first(self) -> None:
        recs = FallbackScorer(_SMALL_CATALOG).recommend(_profile(["Fantasy"]))

        assert [r.title for r in recs[:2]] == ["Dragon Tale", "Wand Work"]
        assert recs[0].score == 10
        assert recs[-1].score == 0

    def test_partial_match_is_bidirectional(self) -> None:
        recs = FallbackScorer(_SMALL_CATALOG).recommend(_profile(["Fiction"]))
        assert recs[0].title == "Space Run"

    def test_author_bonus_adds_to_genre_score(self) -> None:
        recs = FallbackScorer(_SMALL_CATALOG).recommend(_profile(["Fantasy"], ["ann smith"]))
        assert recs[0].score == 15

    def test_default_reason_names_genres(self) -> None:
        recs = FallbackScorer(_SMALL_CATALOG).recommend(_profile(["Fantasy", "Mystery"]))
        by_title = {r.title: r for r in recs}

        assert by_title["Dragon Tale"].reason == "Dragons!"
        assert by_title["Wand Work"].reason == "Based on your interest in Fantasy and Mystery genres."

    def test_no_genre_hit_falls_through(self) -> None:
        recs = FallbackScorer(_SMALL_CATALOG, rng=random.Random(1)).recommend(_profile(["Poetry"]))
        assert all(50 <= r.score <= 70 for r in recs)

    def test_top_ten_of_full_catalog(self) -> None:
        recs = FallbackScorer().recommend(_profile(["Fantasy"]))
        assert len(recs) == 10
        assert [r.score for r in recs] == sorted((r.score for r in recs), reverse=True)


# ======================================================================
# Author path
# ======================================================================


class TestAuthorPath:
    def test_author_matches_then_fillers(self) -> None:
        recs = FallbackScorer(_SMALL_CATALOG).recommend(_profile(authors=["Ann Smith"]))

        assert [r.score for r in recs] == [80, 80, 60, 60]
        assert {r.title for r in recs[:2]} == {"Dragon Tale", "Wand Work"}
        assert recs[2].reason == "Recommended based on your reading preferences."

    def test_fills_to_ten_from_full_catalog(self) -> None:
        recs = FallbackScorer().recommend(_profile(authors=["Rick Riordan"]))
        assert len(recs) == 10
        assert sum(1 for r in recs if r.score == 80) == 2


# ======================================================================
# General path
# ======================================================================


class TestGeneralPath:
    def test_returns_min_ten_and_catalog_size(self) -> None:
        assert len(FallbackScorer(_SMALL_CATALOG).recommend(_profile())) == 4
        assert len(FallbackScorer().recommend(_profile())) == min(10, len(FALLBACK_CATALOG))

    def test_scores_in_general_range(self) -> None:
        for seed in range(20):
            recs = FallbackScorer(rng=random.Random(seed)).recommend(_profile())
            assert all(50 <= r.score <= 70 for r in recs)

    def test_seeded_output_is_deterministic(self) -> None:
        first = FallbackScorer(rng=random.Random(42)).recommend(_profile())
        second = FallbackScorer(rng=random.Random(42)).recommend(_profile())
        assert first == second

    def test_general_reason(self) -> None:
        catalog = (CatalogBook(title="Plain", author="P", genre="Misc"),)
        recs = FallbackScorer(catalog).recommend(_profile())
        assert recs[0].reason == "A popular book that many readers enjoy!"


# ======================================================================
# Shared rules
# ======================================================================


class TestSharedRules:
    def test_owned_books_excluded_case_insensitively(self) -> None:
        owned = [RatedBook(title="dragon tale", author="ANN SMITH", rating=2)]
        recs = FallbackScorer(_SMALL_CATALOG).recommend(_profile(["Fantasy"]), owned)
        assert "Dragon Tale" not in {r.title for r in recs}

    def test_owned_title_by_other_author_not_excluded(self) -> None:
        owned = [RatedBook(title="Dragon Tale", author="Someone Else", rating=5)]
        recs = FallbackScorer(_SMALL_CATALOG).recommend(_profile(["Fantasy"]), owned)
        assert "Dragon Tale" in {r.title for r in recs}

    @pytest.mark.parametrize(
        "profile",
        [_profile(["Fantasy"]), _profile(authors=["Neil Gaiman"]), _profile()],
    )
    def test_all_items_marked_fallback_and_clamped(self, profile: ReadingProfile) -> None:
        recs = FallbackScorer(rng=random.Random(3)).recommend(profile)
        assert recs
        assert all(r.source == RecommendationSource.FALLBACK for r in recs)
        assert all(0 <= r.score <= 100 for r in recs)
        assert len(recs) <= 10

    def test_empty_catalog(self) -> None:
        assert FallbackScorer(()).recommend(_profile(["Fantasy"])) == []
