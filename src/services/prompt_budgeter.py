"""Token-budgeted prompt assembly for recommendation requests.

The prompt is built in a fixed order:

    header -> profile summary -> reader context -> genres / authors /
    themes -> highly rated books -> bio -> closing requirements

Everything before the closing requirements is *variable* content and is
held under ``max_tokens`` (estimated as characters / 4, rounded up).
Each piece is appended only if the running estimate stays within the
ceiling.  Books are added greedily in profile order and the loop stops
at the first book that does not fit, even if a later, shorter one
would.  The closing block is fixed text and is always appended.

Free-text fields (review, favourite character, bio, reader context) are
truncated independently to ``max_field_chars`` with a trailing ``...``.
"""

from __future__ import annotations

import math

from src.config.settings import Settings
from src.models.book import RatedBook, ReadingProfile, UserContext
from src.models.recommendation import BuiltPrompt, CostEstimate
from src.utils.logging import get_logger

CHARS_PER_TOKEN = 4

_ELLIPSIS = "..."

_HEADER = (
    "You are a book recommendation expert. Based on the following reading "
    "history, suggest 10 personalized book recommendations.\n\n"
)

_BIO_TEMPLATE = (
    "\nUser's Bio:\n{bio}\n\nUse this information about the user's interests, "
    "personality, and preferences to provide more personalized recommendations.\n"
)

_REQUIREMENTS = (
    "\nRequirements:\n"
    "- Suggest 10 book recommendations\n"
    "- Books should be age-appropriate for teens (13-18 years)\n"
    "- Include diverse genres and authors\n"
    "- Provide a brief reason for each recommendation\n"
    "- Format as JSON array with: title, author, reason\n"
    "- Do not suggest books already in their library\n"
)


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def truncate_text(text: str, max_chars: int) -> str:
    """Strip *text* and cut it to *max_chars*, ending in ``...`` when cut."""
    stripped = text.strip()
    if len(stripped) <= max_chars:
        return stripped
    return stripped[: max(max_chars - len(_ELLIPSIS), 0)] + _ELLIPSIS


def estimate_cost(
    input_tokens: int,
    output_tokens: int = 1500,
    input_cost_per_million: float = 0.15,
    output_cost_per_million: float = 0.60,
) -> CostEstimate:
    """Price one provider call from its token counts.

    Parameters
    ----------
    input_tokens:
        Estimated prompt tokens.
    output_tokens:
        Tokens the completion is assumed to use.
    input_cost_per_million, output_cost_per_million:
        USD pricing per one million tokens.

    Returns
    -------
    CostEstimate
        Costs in USD; ``formatted`` reads ``"< $0.001"`` for anything
        under a tenth of a cent.
    """
    input_cost = input_tokens / 1_000_000 * input_cost_per_million
    output_cost = output_tokens / 1_000_000 * output_cost_per_million
    total_cost = input_cost + output_cost
    formatted = "< $0.001" if total_cost < 0.001 else f"${total_cost:.4f}"
    return CostEstimate(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=total_cost,
        formatted=formatted,
    )


class PromptBudgeter:
    """Builds the provider prompt from a reading profile under a token ceiling."""

    def __init__(
        self,
        max_tokens: int = 1000,
        max_field_chars: int = 200,
        input_cost_per_million: float = 0.15,
        output_cost_per_million: float = 0.60,
        assumed_output_tokens: int = 1500,
    ) -> None:
        self._max_tokens = max_tokens
        self._max_field_chars = max_field_chars
        self._input_cost_per_million = input_cost_per_million
        self._output_cost_per_million = output_cost_per_million
        self._assumed_output_tokens = assumed_output_tokens
        self._logger = get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> PromptBudgeter:
        return cls(
            max_tokens=settings.prompt_max_tokens,
            max_field_chars=settings.prompt_max_field_chars,
            input_cost_per_million=settings.input_cost_per_million,
            output_cost_per_million=settings.output_cost_per_million,
            assumed_output_tokens=settings.assumed_output_tokens,
        )

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(
        self,
        profile: ReadingProfile,
        user_context: UserContext | None = None,
    ) -> BuiltPrompt:
        """Assemble the prompt for *profile*.

        Parameters
        ----------
        profile:
            Output of :func:`~src.services.profile_analyzer.analyze_reading_profile`.
        user_context:
            Optional bio and reader-context hint.

        Returns
        -------
        BuiltPrompt
            The full text, its token estimate, the estimate of the
            budgeted portion alone, how many books made it in, and the
            cost estimate for sending it.
        """
        body = _HEADER
        body = self._append_if_fits(body, "User's Reading Profile:\n")
        body = self._append_if_fits(body, f"- Total books read: {profile.total_books}\n")
        body = self._append_if_fits(body, f"- Average rating: {profile.average_rating:.1f}/5\n")

        if user_context is not None and user_context.age_hint and user_context.age_hint.strip():
            hint = truncate_text(user_context.age_hint, self._max_field_chars)
            body = self._append_if_fits(body, f"- Reader context: {hint}\n")
        if profile.favorite_genres:
            body = self._append_if_fits(
                body, f"- Favorite genres: {', '.join(profile.favorite_genres)}\n"
            )
        if profile.favorite_authors:
            body = self._append_if_fits(
                body, f"- Favorite authors: {', '.join(profile.favorite_authors)}\n"
            )
        if profile.reading_themes:
            body = self._append_if_fits(
                body, f"- Reading themes: {', '.join(profile.reading_themes)}\n"
            )

        books_section, included = self._books_section(body, profile.highly_rated_books)
        body += books_section

        if user_context is not None and user_context.bio and user_context.bio.strip():
            bio = truncate_text(user_context.bio, self._max_field_chars)
            body = self._append_if_fits(body, _BIO_TEMPLATE.format(bio=bio))

        text = body + _REQUIREMENTS
        token_estimate = estimate_tokens(text)
        cost = estimate_cost(
            token_estimate,
            self._assumed_output_tokens,
            self._input_cost_per_million,
            self._output_cost_per_million,
        )

        self._logger.info(
            "prompt_built",
            token_estimate=token_estimate,
            budgeted_tokens=estimate_tokens(body),
            included_books=included,
            candidate_books=len(profile.highly_rated_books),
            estimated_cost=cost.formatted,
        )
        return BuiltPrompt(
            text=text,
            token_estimate=token_estimate,
            budgeted_tokens=estimate_tokens(body),
            included_books=included,
            cost_estimate=cost,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _fits(self, text: str) -> bool:
        return estimate_tokens(text) <= self._max_tokens

    def _append_if_fits(self, body: str, piece: str) -> str:
        candidate = body + piece
        return candidate if self._fits(candidate) else body

    def _format_book(self, book: RatedBook) -> str:
        genre = f" ({book.genre})" if book.genre else ""
        entry = f'- "{book.title}" by {book.author}{genre} - Rated {book.rating}/5'
        if book.review and book.review.strip():
            entry += f'\n  Review: "{truncate_text(book.review, self._max_field_chars)}"'
        if book.favorite_character and book.favorite_character.strip():
            character = truncate_text(book.favorite_character, self._max_field_chars)
            entry += f"\n  Favorite Character: {character}"
        return entry + "\n"

    def _books_section(self, body: str, books: list[RatedBook]) -> tuple[str, int]:
        """Greedily add book entries; the heading counts only what was added."""
        entries: list[str] = []
        for book in books:
            entry = self._format_book(book)
            candidate = _books_heading(len(entries) + 1) + "".join(entries) + entry
            if not self._fits(body + candidate):
                break
            entries.append(entry)

        if not entries:
            return "", 0
        return _books_heading(len(entries)) + "".join(entries), len(entries)


def _books_heading(count: int) -> str:
    return f"\nHighly Rated Books ({count}):\n"
