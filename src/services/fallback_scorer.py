"""Catalog-based recommender used when the text-generation provider fails.

Ranks :data:`~src.config.catalog.FALLBACK_CATALOG` against the user's
favourite genres and authors without any network call.  Policy, first
match wins:

  1. GENRE    -- every candidate scores +10 per favourite genre it
                 matches and +5 per favourite author.  The top 10 are
                 returned if the best score is above zero.
  2. AUTHOR   -- up to 5 candidates by a favourite author (score 80),
                 topped up to 10 with other candidates (score 60).
  3. GENERAL  -- a shuffle of the catalog, 10 picks, each with a random
                 score in [50, 70].

Matching is case-insensitive and bidirectional on substrings, so
"Science Fiction" matches "Fiction" and vice versa.  Books the user
already owns are always excluded first.  Every item is tagged
``source=fallback``.
"""

from __future__ import annotations

import random
from typing import Iterable, Sequence

from src.config.catalog import FALLBACK_CATALOG
from src.models.book import CatalogBook, RatedBook, ReadingProfile
from src.models.recommendation import Recommendation, RecommendationSource
from src.utils.logging import get_logger

_MAX_RESULTS = 10
_MAX_AUTHOR_MATCHES = 5

_GENRE_MATCH_POINTS = 10
_AUTHOR_MATCH_POINTS = 5
_AUTHOR_PATH_MATCH_SCORE = 80
_AUTHOR_PATH_FILLER_SCORE = 60
_GENERAL_SCORE_RANGE = (50, 70)

_AUTHOR_PATH_REASON = "Recommended based on your reading preferences."
_GENERAL_REASON = "A popular book that many readers enjoy!"


def _matches(candidate: str, favourite: str) -> bool:
    candidate = candidate.strip().lower()
    favourite = favourite.strip().lower()
    if not candidate or not favourite:
        return False
    return favourite in candidate or candidate in favourite


def _owned_key(title: str, author: str) -> tuple[str, str]:
    return title.strip().lower(), author.strip().lower()


class FallbackScorer:
    """Deterministic (given its random source) recommender over a fixed catalog.

    Parameters
    ----------
    catalog:
        Candidate books.  Defaults to the built-in catalog.
    rng:
        Random source for the general path.  Pass ``random.Random(seed)``
        for reproducible output.
    """

    def __init__(
        self,
        catalog: Sequence[CatalogBook] = FALLBACK_CATALOG,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = tuple(catalog)
        self._rng = rng or random.Random()
        self._logger = get_logger(__name__)

    def recommend(
        self,
        profile: ReadingProfile,
        owned_books: Iterable[RatedBook] = (),
    ) -> list[Recommendation]:
        """Return up to 10 fallback recommendations, best first.

        Parameters
        ----------
        profile:
            Supplies ``favorite_genres`` and ``favorite_authors``.
        owned_books:
            Every book on the user's shelf, rated or not; matching
            ``(title, author)`` pairs are never recommended.
        """
        owned = {_owned_key(book.title, book.author) for book in owned_books}
        available = [
            book for book in self._catalog if _owned_key(book.title, book.author) not in owned
        ]

        strategy = "general"
        results: list[Recommendation] = []
        if profile.favorite_genres:
            results = self._by_genre(available, profile.favorite_genres, profile.favorite_authors)
            strategy = "genre"
        if not results and profile.favorite_authors:
            results = self._by_author(available, profile.favorite_authors)
            strategy = "author"
        if not results:
            results = self._general(available)
            strategy = "general"

        self._logger.info(
            "fallback_recommendations_generated",
            strategy=strategy,
            count=len(results),
            excluded_owned=len(self._catalog) - len(available),
        )
        return results

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _by_genre(
        self,
        available: list[CatalogBook],
        genres: list[str],
        authors: list[str],
    ) -> list[Recommendation]:
        scored: list[tuple[int, CatalogBook]] = []
        for book in available:
            score = _GENRE_MATCH_POINTS * sum(1 for g in genres if _matches(book.genre, g))
            score += _AUTHOR_MATCH_POINTS * sum(1 for a in authors if _matches(book.author, a))
            scored.append((score, book))

        # Stable: equal scores keep catalog order.
        top = sorted(scored, key=lambda pair: pair[0], reverse=True)[:_MAX_RESULTS]
        if not top or top[0][0] <= 0:
            return []

        default_reason = f"Based on your interest in {' and '.join(genres)} genres."
        return [
            _to_recommendation(book, min(100, score), book.reason or default_reason)
            for score, book in top
        ]

    def _by_author(
        self,
        available: list[CatalogBook],
        authors: list[str],
    ) -> list[Recommendation]:
        matches = [
            book for book in available if any(_matches(book.author, a) for a in authors)
        ][:_MAX_AUTHOR_MATCHES]
        if not matches:
            return []

        matched_titles = {book.title for book in matches}
        fillers = [book for book in available if book.title not in matched_titles]
        fillers = fillers[: _MAX_RESULTS - len(matches)]

        return [
            _to_recommendation(book, _AUTHOR_PATH_MATCH_SCORE, book.reason or _AUTHOR_PATH_REASON)
            for book in matches
        ] + [
            _to_recommendation(book, _AUTHOR_PATH_FILLER_SCORE, book.reason or _AUTHOR_PATH_REASON)
            for book in fillers
        ]

    def _general(self, available: list[CatalogBook]) -> list[Recommendation]:
        shuffled = list(available)
        self._rng.shuffle(shuffled)
        low, high = _GENERAL_SCORE_RANGE
        picks = shuffled[:_MAX_RESULTS]
        scores = [self._rng.randint(low, high) for _ in picks]
        # Keep the descending-score invariant of every result set.
        ranked = sorted(zip(scores, picks), key=lambda pair: pair[0], reverse=True)
        return [
            _to_recommendation(book, score, book.reason or _GENERAL_REASON)
            for score, book in ranked
        ]


def _to_recommendation(book: CatalogBook, score: int, reason: str) -> Recommendation:
    return Recommendation(
        title=book.title,
        author=book.author,
        reason=reason,
        score=score,
        source=RecommendationSource.FALLBACK,
        extra={"genre": book.genre},
    )
