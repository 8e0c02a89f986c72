"""Recommendation models for the Shelfwise pipeline.

Defines Pydantic v2 models for scored book suggestions, the result of a
generation call, the per-user rate-limit and cache records kept in the
key-value store, the budgeted prompt, and the usage record handed to the
tracking sink.

Two source enums exist on purpose: an individual
:class:`Recommendation` was produced either by the provider or by the
fallback catalog, while a :class:`GenerationResult` may additionally have
been served from the cache (in which case its items keep their original
per-item source).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.book import ReadingProfile


class RecommendationSource(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Who produced a single recommendation."""

    PROVIDER = "provider"
    FALLBACK = "fallback"


class GenerationSource(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Where a whole result set came from."""

    PROVIDER = "provider"
    FALLBACK = "fallback"
    CACHE = "cache"


# ---------------------------------------------------------------------------
# Recommendation — one scored book suggestion.
# ---------------------------------------------------------------------------
class Recommendation(BaseModel):
    """A single book suggestion with an explanation and a 0–100 score.

    Within one result set scores are sorted descending; ties keep the
    order in which the items were generated.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    author: str = ""
    reason: str = ""
    score: int = Field(default=0, ge=0, le=100)
    source: RecommendationSource
    # Anything else the provider volunteered (genre, year, ...).
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_ai(self) -> bool:
        return self.source == RecommendationSource.PROVIDER


# ---------------------------------------------------------------------------
# Prompt budget output
# ---------------------------------------------------------------------------
class CostEstimate(BaseModel):
    """Monetary estimate for one provider call, in USD."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int
    output_tokens: int
    input_cost: float
    output_cost: float
    total_cost: float
    formatted: str


class BuiltPrompt(BaseModel):
    """A prompt assembled under the token budget.

    ``budgeted_tokens`` covers only the variable profile content the
    budget governs; ``token_estimate`` covers the full text including the
    fixed closing instructions.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    token_estimate: int
    budgeted_tokens: int
    included_books: int
    cost_estimate: CostEstimate


# ---------------------------------------------------------------------------
# Rate limiter records
# ---------------------------------------------------------------------------
class RateLimitState(BaseModel):
    """Per-user limiter counters as stored in the key-value store.

    Timestamps are wall-clock epoch seconds.  Created lazily on the first
    check and never explicitly destroyed; old request timestamps are
    pruned as they leave the trailing hour.
    """

    requests: list[float] = Field(default_factory=list)
    daily_count: int = 0
    last_reset: float | None = None
    last_request_at: float | None = None


class RateLimitDecision(BaseModel):
    """Outcome of a gate check."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    retry_after: int | None = None
    # "cooldown", "hourly" or "daily" when rejected.
    limit: str | None = None


class RateLimitStatus(BaseModel):
    """Current usage against the limits, for display."""

    model_config = ConfigDict(frozen=True)

    hourly_used: int
    hourly_limit: int
    daily_used: int
    daily_limit: int
    can_request: bool


# ---------------------------------------------------------------------------
# Cache record
# ---------------------------------------------------------------------------
class CacheEntry(BaseModel):
    """A cached recommendation set.  Expires a fixed time after creation."""

    recommendations: list[Recommendation]
    timestamp: float
    source: GenerationSource = GenerationSource.PROVIDER


# ---------------------------------------------------------------------------
# Generation output
# ---------------------------------------------------------------------------
class GenerationResult(BaseModel):
    """What :meth:`RecommendationDispatcher.generate` hands back.

    ``error`` is informational: when the provider failed it explains why
    the fallback catalog was used.  Rate-limit rejections are raised, not
    returned.
    """

    model_config = ConfigDict(frozen=True)

    recommendations: list[Recommendation] = Field(default_factory=list)
    source: GenerationSource
    error: str | None = None
    books_hash: str = "empty"
    token_estimate: int | None = None
    cost_estimate: CostEstimate | None = None

    @property
    def from_cache(self) -> bool:
        return self.source == GenerationSource.CACHE


# ---------------------------------------------------------------------------
# Usage-tracking record
# ---------------------------------------------------------------------------
class UsageRecord(BaseModel):
    """One non-cached generation, as written to the usage-tracking sink."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    profile: ReadingProfile
    books_hash: str
    prompt_text: str
    model_used: str
    provider_generated: bool
    tokens_used: int | None = None
    estimated_cost: float | None = None
    recommendations: list[Recommendation] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# NormalizedResponse — provider body after format quirks are stripped.
# ---------------------------------------------------------------------------
@dataclass
class NormalizedResponse:
    """Explicit success/failure result of reading a provider body.

    A plain dataclass rather than Pydantic: it carries raw provider dicts
    between two internal steps and is never serialised.
    """

    ok: bool
    items: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
