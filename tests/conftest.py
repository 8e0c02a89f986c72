"""Shared pytest fixtures for the Shelfwise test suite."""

from __future__ import annotations

import json
import random
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.book import RatedBook
from src.providers.store.memory_store import MemoryKeyValueStore
from src.services.fallback_scorer import FallbackScorer
from src.services.prompt_budgeter import PromptBudgeter
from src.services.rate_limiter import RateLimiter
from src.services.recommendation_cache import RecommendationCache
from src.services.recommendation_dispatcher import RecommendationDispatcher

# Wall-clock start for fake clocks: 2025-01-01T00:00:00Z.
EPOCH_START = 1_735_689_600.0


class FakeClock:
    """Controllable time source; call it to read, ``advance`` to move."""

    def __init__(self, start: float = EPOCH_START) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Time & storage
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryKeyValueStore:
    return MemoryKeyValueStore(timer=clock)


@pytest.fixture
def test_settings() -> Settings:
    """Settings pinned to the shipped defaults, immune to a developer's .env."""
    return Settings(
        _env_file=None,
        openai_api_key="",
        anthropic_api_key="",
        rate_limit_max_per_hour=2,
        rate_limit_max_per_day=5,
        rate_limit_min_interval_seconds=300,
        recommendation_cache_ttl_seconds=3600,
        prompt_max_tokens=1000,
        prompt_max_field_chars=200,
        provider_timeout_seconds=25.0,
        force_refresh=False,
    )


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


def provider_json(items: list[dict[str, Any]], fenced: bool = False) -> str:
    body = json.dumps(items)
    return f"```json\n{body}\n```" if fenced else body


@pytest.fixture
def sample_provider_items() -> list[dict[str, Any]]:
    return [
        {"title": "The Name of the Wind", "author": "Patrick Rothfuss",
         "reason": "Lyrical fantasy for a fan of Fantasy epics."},
        {"title": "Scythe", "author": "Neal Shusterman",
         "reason": "A thought-provoking dystopia."},
        {"title": "Sabriel", "author": "Garth Nix",
         "reason": "Dark, inventive magic."},
    ]


@pytest.fixture
def mock_llm(sample_provider_items: list[dict[str, Any]]) -> MagicMock:
    """An available provider that answers with ``sample_provider_items``."""
    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(return_value=provider_json(sample_provider_items))
    llm.is_available.return_value = True
    llm.get_provider_name.return_value = "mock-llm"
    llm.get_model_name.return_value = "mock-model-mini"
    return llm


# ---------------------------------------------------------------------------
# Domain data
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_books() -> list[RatedBook]:
    return [
        RatedBook(id=1, title="The Hobbit", author="J.R.R. Tolkien", genre="Fantasy", rating=5,
                  review="Loved every page.", memorable_moments="The riddle game was pure adventure."),
        RatedBook(id=2, title="Holes", author="Louis Sachar", genre="Mystery", rating=4,
                  favorite_character="Stanley"),
        RatedBook(id=3, title="Twilight", author="Stephenie Meyer", genre="Romance", rating=2),
        RatedBook(id=4, title="Eragon", author="Christopher Paolini", genre="Fantasy", rating=4,
                  memorable_moments="Friendship with a dragon, and real courage."),
    ]


# ---------------------------------------------------------------------------
# Assembled core
# ---------------------------------------------------------------------------


@pytest.fixture
def make_dispatcher(store: MemoryKeyValueStore, clock: FakeClock):
    """Factory building a dispatcher on the shared fake clock and store."""

    def _make(
        llm_provider: ILLMProvider | None = None,
        usage_tracker: Any = None,
        provider_timeout_seconds: float = 25.0,
        seed: int = 7,
    ) -> RecommendationDispatcher:
        return RecommendationDispatcher(
            rate_limiter=RateLimiter(store, clock=clock),
            cache=RecommendationCache(store, clock=clock),
            budgeter=PromptBudgeter(),
            fallback_scorer=FallbackScorer(rng=random.Random(seed)),
            llm_provider=llm_provider,
            usage_tracker=usage_tracker,
            provider_timeout_seconds=provider_timeout_seconds,
        )

    return _make
