"""Reading-profile analysis for the recommendation pipeline.

Turns the user's shelf into a compact :class:`ReadingProfile`: how many
well-liked books there are, the average rating among them, the genres
and authors that recur, the standout titles, and a handful of themes
lifted from the user's "memorable moments" notes.

Only *eligible* books (rating 4 or 5) contribute.  Callers are expected
to have removed wishlist-only entries already; the rating filter is
applied here regardless.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from src.models.book import RatedBook, ReadingProfile

MIN_ELIGIBLE_RATING = 4

_MAX_FAVORITES = 5
_MAX_HIGHLY_RATED = 10
_MAX_THEMES = 5

# Matched case-insensitively as substrings of ``memorable_moments``.
THEME_KEYWORDS: tuple[str, ...] = (
    "adventure",
    "friendship",
    "love",
    "mystery",
    "courage",
    "family",
    "growth",
)


def is_eligible(book: RatedBook) -> bool:
    return book.rating >= MIN_ELIGIBLE_RATING


def _top(values: Iterable[str], limit: int) -> list[str]:
    # Counter preserves insertion order, and most_common() sorts stably,
    # so equal counts stay in first-seen order.
    counts = Counter(value for value in values if value)
    return [value for value, _count in counts.most_common(limit)]


def _extract_themes(books: list[RatedBook]) -> list[str]:
    themes: list[str] = []
    for book in books:
        if not book.memorable_moments:
            continue
        moments = book.memorable_moments.lower()
        for keyword in THEME_KEYWORDS:
            if keyword in moments and keyword not in themes:
                themes.append(keyword)
                if len(themes) == _MAX_THEMES:
                    return themes
    return themes


def analyze_reading_profile(books: Iterable[RatedBook]) -> ReadingProfile:
    """Derive a :class:`ReadingProfile` from the user's rated books.

    Parameters
    ----------
    books:
        The user's rated books in shelf order.  Books rated below 4 (or
        never rated) are ignored.

    Returns
    -------
    ReadingProfile
        The zero profile when no book is eligible.
    """
    eligible = [book for book in books if is_eligible(book)]
    if not eligible:
        return ReadingProfile.empty()

    average = round(sum(book.rating for book in eligible) / len(eligible), 1)

    # sorted() is stable: equal ratings keep shelf order.
    highly_rated = sorted(eligible, key=lambda book: book.rating, reverse=True)

    return ReadingProfile(
        total_books=len(eligible),
        average_rating=average,
        favorite_genres=_top((book.genre or "" for book in eligible), _MAX_FAVORITES),
        favorite_authors=_top((book.author for book in eligible), _MAX_FAVORITES),
        highly_rated_books=highly_rated[:_MAX_HIGHLY_RATED],
        reading_themes=_extract_themes(eligible),
    )
