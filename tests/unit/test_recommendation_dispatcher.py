"""Unit tests for provider scoring and the dispatcher's failure paths."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.interfaces.usage_tracker import IUsageTracker
from src.models.book import RatedBook, ReadingProfile
from src.models.recommendation import GenerationSource, RecommendationSource
from src.services.recommendation_dispatcher import SYSTEM_PROMPT, score_provider_items
from src.utils.errors import LLMError, RateLimitExceededError
from tests.conftest import provider_json


def _items(n: int) -> list[dict[str, Any]]:
    return [{"title": f"Book {i}", "author": f"Author {i}", "reason": "Good."} for i in range(n)]


# ======================================================================
# Provider item scoring
# ======================================================================


class TestScoreProviderItems:
    def test_position_bonus_and_half_up_rounding(self) -> None:
        recs = score_provider_items(_items(3), ReadingProfile.empty())
        # 85 + 15, 85 + 13.5 (rounds up), 85 + 12
        assert [r.score for r in recs] == [100, 99, 97]

    def test_only_first_ten_items_kept(self) -> None:
        recs = score_provider_items(_items(14), ReadingProfile.empty())
        assert len(recs) == 10
        assert recs[-1].title == "Book 9"
        assert recs[-1].score == 87

    def test_preference_mentions_raise_score_and_reorder(self) -> None:
        items = _items(5)
        items[4]["reason"] = "Perfect for fans of Mystery and of Louis Sachar."
        profile = ReadingProfile(favorite_genres=["Mystery"], favorite_authors=["Louis Sachar"])

        recs = score_provider_items(items, profile)

        by_title = {r.title: r.score for r in recs}
        # 85 + 9 + 5 + 5, capped
        assert by_title["Book 4"] == 100
        assert [r.title for r in recs][:2] == ["Book 0", "Book 4"]

    def test_score_capped_at_100(self) -> None:
        items = [{"title": "X", "reason": "fantasy mystery tolkien sachar"}]
        profile = ReadingProfile(
            favorite_genres=["Fantasy", "Mystery"], favorite_authors=["Tolkien", "Sachar"]
        )
        assert score_provider_items(items, profile)[0].score == 100

    def test_ties_keep_generation_order(self) -> None:
        items = _items(3)
        items[1]["reason"] = "fantasy"
        items[2]["reason"] = "fantasy fantasy"
        profile = ReadingProfile(favorite_genres=["Fantasy"])

        recs = score_provider_items(items, profile)

        # 100 (capped), 99 + 5 -> 100, 97 + 5 = 102 -> 100
        assert [r.title for r in recs] == ["Book 0", "Book 1", "Book 2"]

    def test_extra_fields_and_source(self) -> None:
        items = [{"title": "Dune", "author": "Frank Herbert", "reason": "", "year": 1965}]
        rec = score_provider_items(items, ReadingProfile.empty())[0]
        assert rec.extra == {"year": 1965}
        assert rec.source == RecommendationSource.PROVIDER
        assert rec.is_ai is True


# ======================================================================
# Dispatcher: provider outcomes
# ======================================================================


class TestProviderOutcomes:
    @pytest.mark.asyncio
    async def test_provider_success(
        self, make_dispatcher, mock_llm: MagicMock, sample_books: list[RatedBook]
    ) -> None:
        result = await make_dispatcher(llm_provider=mock_llm).generate(sample_books)

        assert result.source == GenerationSource.PROVIDER
        assert result.error is None
        assert [r.score for r in result.recommendations] == [100, 99, 97]
        kwargs = mock_llm.complete.call_args.kwargs
        assert kwargs["system_prompt"] == SYSTEM_PROMPT
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 1500

    @pytest.mark.asyncio
    async def test_fenced_provider_body_accepted(
        self, make_dispatcher, mock_llm: MagicMock, sample_books, sample_provider_items
    ) -> None:
        mock_llm.complete = AsyncMock(return_value=provider_json(sample_provider_items, fenced=True))
        result = await make_dispatcher(llm_provider=mock_llm).generate(sample_books)
        assert result.source == GenerationSource.PROVIDER

    @pytest.mark.asyncio
    async def test_no_provider_uses_fallback(self, make_dispatcher, sample_books) -> None:
        result = await make_dispatcher().generate(sample_books)

        assert result.source == GenerationSource.FALLBACK
        assert result.error == "No text-generation provider is available"
        assert all(r.source == RecommendationSource.FALLBACK for r in result.recommendations)

    @pytest.mark.asyncio
    async def test_unavailable_provider_not_called(
        self, make_dispatcher, mock_llm: MagicMock, sample_books
    ) -> None:
        mock_llm.is_available.return_value = False
        result = await make_dispatcher(llm_provider=mock_llm).generate(sample_books)
        assert result.source == GenerationSource.FALLBACK
        assert result.error == "No text-generation provider is available"
        mock_llm.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_llm_error_uses_fallback(
        self, make_dispatcher, mock_llm: MagicMock, sample_books
    ) -> None:
        mock_llm.complete = AsyncMock(side_effect=LLMError("boom", provider_name="mock-llm"))
        result = await make_dispatcher(llm_provider=mock_llm).generate(sample_books)
        assert result.source == GenerationSource.FALLBACK
        assert result.error == "[mock-llm] boom"

    @pytest.mark.asyncio
    async def test_unexpected_exception_uses_fallback(
        self, make_dispatcher, mock_llm: MagicMock, sample_books
    ) -> None:
        mock_llm.complete = AsyncMock(side_effect=RuntimeError("socket closed"))
        result = await make_dispatcher(llm_provider=mock_llm).generate(sample_books)
        assert result.source == GenerationSource.FALLBACK
        assert "socket closed" in result.error

    @pytest.mark.asyncio
    async def test_unparseable_body_uses_fallback(
        self, make_dispatcher, mock_llm: MagicMock, sample_books
    ) -> None:
        mock_llm.complete = AsyncMock(return_value="I recommend Dune!")
        result = await make_dispatcher(llm_provider=mock_llm).generate(sample_books)
        assert result.source == GenerationSource.FALLBACK
        assert "Unparseable" in result.error

    @pytest.mark.asyncio
    async def test_timeout_uses_fallback(
        self, make_dispatcher, mock_llm: MagicMock, sample_books
    ) -> None:
        async def _slow(**_kwargs: Any) -> str:
            await asyncio.sleep(5)
            return "[]"

        mock_llm.complete = AsyncMock(side_effect=_slow)
        dispatcher = make_dispatcher(llm_provider=mock_llm, provider_timeout_seconds=0.05)

        result = await dispatcher.generate(sample_books)

        assert result.source == GenerationSource.FALLBACK
        assert result.error == "Provider timed out after 0.05s"


# ======================================================================
# Dispatcher: anonymous requests
# ======================================================================


class TestAnonymousRequests:
    @pytest.mark.asyncio
    async def test_anonymous_calls_are_never_limited(
        self, make_dispatcher, mock_llm: MagicMock, sample_books
    ) -> None:
        dispatcher = make_dispatcher(llm_provider=mock_llm)
        for _ in range(8):
            result = await dispatcher.generate(sample_books)
            assert result.source == GenerationSource.PROVIDER
        assert mock_llm.complete.await_count == 8

    @pytest.mark.asyncio
    async def test_anonymous_calls_are_not_tracked(
        self, make_dispatcher, mock_llm: MagicMock, sample_books
    ) -> None:
        tracker = MagicMock(spec=IUsageTracker)
        tracker.record_generation = AsyncMock()
        await make_dispatcher(llm_provider=mock_llm, usage_tracker=tracker).generate(sample_books)
        tracker.record_generation.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejection_raises_for_known_user(
        self, make_dispatcher, mock_llm: MagicMock, sample_books
    ) -> None:
        dispatcher = make_dispatcher(llm_provider=mock_llm)
        await dispatcher.generate(sample_books, user_id="u1")

        with pytest.raises(RateLimitExceededError) as exc_info:
            await dispatcher.generate(sample_books, user_id="u1", force_refresh=True)

        assert exc_info.value.limit == "cooldown"
        assert exc_info.value.retry_after == 300
        assert mock_llm.complete.await_count == 1
