"""Reading-history models for the Shelfwise recommendation pipeline.

Defines Pydantic v2 models for the books a user has rated, the compact
statistical profile derived from them, the optional free-text context a
user supplies about themselves, and the entries of the built-in fallback
catalog.  All models use frozen config: the pipeline never mutates its
inputs.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# RatedBook — one book from the user's shelf, with their rating and notes.
# ---------------------------------------------------------------------------
class RatedBook(BaseModel):
    """A book the user has read and rated.

    Owned by the caller.  Free-text fields are unbounded; the prompt
    builder truncates them, never this model.  ``rating`` 0 means the
    book was never rated and is never eligible for the profile.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Storage identifier; only used for the cache content hash.
    id: str | int | None = None
    title: str
    author: str = ""
    genre: str | None = None
    rating: int = Field(default=0, ge=0, le=5)
    review: str | None = None
    favorite_character: str | None = Field(default=None, alias="favoriteCharacter")
    memorable_moments: str | None = Field(default=None, alias="memorableMoments")


# ---------------------------------------------------------------------------
# ReadingProfile — what the analyzer learned from the eligible books.
# ---------------------------------------------------------------------------
class ReadingProfile(BaseModel):
    """Compact statistical profile over the user's eligible (4+ star) books.

    Derived, never persisted by the core.  An empty or all-ineligible
    input produces the zero profile returned by :meth:`empty`.
    """

    model_config = ConfigDict(frozen=True)

    total_books: int = 0
    # Mean of eligible ratings, one decimal.
    average_rating: float = 0.0
    # Top 5 by frequency, ties in first-seen order.
    favorite_genres: list[str] = Field(default_factory=list)
    favorite_authors: list[str] = Field(default_factory=list)
    # Up to 10, rating descending then input order.
    highly_rated_books: list[RatedBook] = Field(default_factory=list)
    # Up to 5 keywords found in memorable moments, first-seen order.
    reading_themes: list[str] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> ReadingProfile:
        return cls()


# ---------------------------------------------------------------------------
# UserContext — optional free text the user shares about themselves.
# ---------------------------------------------------------------------------
class UserContext(BaseModel):
    """Optional personalisation hints supplied alongside the rated books."""

    model_config = ConfigDict(frozen=True)

    bio: str | None = None
    # Free-form audience hint, e.g. "15 years old" or "reads with a book club".
    age_hint: str | None = None


# ---------------------------------------------------------------------------
# CatalogBook — an entry in the built-in fallback catalog.
# ---------------------------------------------------------------------------
class CatalogBook(BaseModel):
    """A candidate the fallback scorer can recommend without a provider."""

    model_config = ConfigDict(frozen=True)

    title: str
    author: str
    genre: str
    reason: str | None = None
