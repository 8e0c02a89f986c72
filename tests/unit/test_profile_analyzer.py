"""Unit tests for the reading-profile analyzer."""

from __future__ import annotations

from src.models.book import RatedBook, ReadingProfile
from src.services.profile_analyzer import THEME_KEYWORDS, analyze_reading_profile


def _book(title: str, rating: int, genre: str | None = None, author: str = "", **kw) -> RatedBook:
    return RatedBook(title=title, author=author, genre=genre, rating=rating, **kw)


# ======================================================================
# Empty / ineligible input
# ======================================================================


class TestIneligibleInput:
    def test_empty_list_yields_zero_profile(self) -> None:
        assert analyze_reading_profile([]) == ReadingProfile.empty()

    def test_all_ratings_below_four_yield_zero_profile(self) -> None:
        books = [
            _book("A", 3, "Fantasy", "Author A", memorable_moments="pure adventure"),
            _book("B", 1, "Horror", "Author B"),
            _book("C", 0, "Mystery", "Author C"),
        ]
        profile = analyze_reading_profile(books)

        assert profile.total_books == 0
        assert profile.average_rating == 0
        assert profile.favorite_genres == []
        assert profile.favorite_authors == []
        assert profile.reading_themes == []
        assert profile.highly_rated_books == []


# ======================================================================
# Counting and ordering
# ======================================================================


class TestProfileStatistics:
    def test_only_eligible_books_are_counted(self, sample_books: list[RatedBook]) -> None:
        profile = analyze_reading_profile(sample_books)

        assert profile.total_books == 3
        assert profile.average_rating == 4.3
        assert "Romance" not in profile.favorite_genres
        assert "Stephenie Meyer" not in profile.favorite_authors

    def test_genres_ranked_by_frequency(self, sample_books: list[RatedBook]) -> None:
        profile = analyze_reading_profile(sample_books)
        assert profile.favorite_genres == ["Fantasy", "Mystery"]

    def test_ties_keep_first_seen_order(self) -> None:
        books = [
            _book("A", 5, "Sci-Fi"),
            _book("B", 5, "Fantasy"),
            _book("C", 4, "Fantasy"),
            _book("D", 4, "Sci-Fi"),
            _book("E", 4, "Horror"),
        ]
        assert analyze_reading_profile(books).favorite_genres == ["Sci-Fi", "Fantasy", "Horror"]

    def test_favorites_capped_at_five(self) -> None:
        books = [_book(f"T{i}", 5, f"Genre {i}", f"Author {i}") for i in range(8)]
        profile = analyze_reading_profile(books)

        assert len(profile.favorite_genres) == 5
        assert len(profile.favorite_authors) == 5
        assert profile.favorite_genres[0] == "Genre 0"

    def test_missing_genre_contributes_to_no_bucket(self) -> None:
        books = [_book("A", 5, None, "Someone"), _book("B", 5, "", "")]
        profile = analyze_reading_profile(books)

        assert profile.favorite_genres == []
        assert profile.favorite_authors == ["Someone"]

    def test_genre_matching_is_exact(self) -> None:
        books = [_book("A", 5, "fantasy"), _book("B", 5, "Fantasy")]
        assert analyze_reading_profile(books).favorite_genres == ["fantasy", "Fantasy"]

    def test_highly_rated_sorted_by_rating_then_input_order(self) -> None:
        books = [
            _book("four-a", 4),
            _book("five-a", 5),
            _book("four-b", 4),
            _book("five-b", 5),
        ]
        titles = [b.title for b in analyze_reading_profile(books).highly_rated_books]
        assert titles == ["five-a", "five-b", "four-a", "four-b"]

    def test_highly_rated_capped_at_ten(self) -> None:
        books = [_book(f"T{i}", 4 + i % 2) for i in range(15)]
        assert len(analyze_reading_profile(books).highly_rated_books) == 10

    def test_average_rounded_to_one_decimal(self) -> None:
        books = [_book("A", 5), _book("B", 4), _book("C", 4)]
        assert analyze_reading_profile(books).average_rating == 4.3


# ======================================================================
# Themes
# ======================================================================


class TestThemes:
    def test_themes_detected_case_insensitively(self) -> None:
        books = [_book("A", 5, memorable_moments="A story of FRIENDSHIP and Courage")]
        assert analyze_reading_profile(books).reading_themes == ["friendship", "courage"]

    def test_themes_first_seen_across_books(self, sample_books: list[RatedBook]) -> None:
        profile = analyze_reading_profile(sample_books)
        assert profile.reading_themes == ["adventure", "friendship", "courage"]

    def test_themes_deduplicated_and_capped(self) -> None:
        everything = " ".join(THEME_KEYWORDS)
        books = [
            _book("A", 5, memorable_moments=everything),
            _book("B", 5, memorable_moments=everything),
        ]
        themes = analyze_reading_profile(books).reading_themes

        assert len(themes) == 5
        assert len(set(themes)) == 5

    def test_ineligible_books_contribute_no_themes(self) -> None:
        books = [_book("A", 3, memorable_moments="mystery"), _book("B", 4)]
        assert analyze_reading_profile(books).reading_themes == []
