"""Shelfwise domain models — re-exports all public model classes.

The models are organized across two submodules by domain concern:
    - book.py            — Rated books, the derived reading profile, user
                           context and fallback catalog entries
    - recommendation.py  — Scored recommendations, generation results,
                           limiter / cache records and usage records
"""

from __future__ import annotations

from src.models.book import CatalogBook, RatedBook, ReadingProfile, UserContext
from src.models.recommendation import (
    BuiltPrompt,
    CacheEntry,
    CostEstimate,
    GenerationResult,
    GenerationSource,
    NormalizedResponse,
    RateLimitDecision,
    RateLimitState,
    RateLimitStatus,
    Recommendation,
    RecommendationSource,
    UsageRecord,
)

__all__ = [
    "BuiltPrompt",
    "CacheEntry",
    "CatalogBook",
    "CostEstimate",
    "GenerationResult",
    "GenerationSource",
    "NormalizedResponse",
    "RateLimitDecision",
    "RateLimitState",
    "RateLimitStatus",
    "RatedBook",
    "ReadingProfile",
    "Recommendation",
    "RecommendationSource",
    "UsageRecord",
    "UserContext",
]
