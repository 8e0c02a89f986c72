"""Pydantic request/response schemas for the Shelfwise API.

Defines the public contract for the recommendation endpoints: generate,
rate-limit status, usage history and stats, and health.  Request schemas
end with "Request", response schemas with "Response".  FastAPI validates
request bodies against them (422 on mismatch) and uses them to render
the OpenAPI docs at ``/docs``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.models.book import RatedBook
from src.models.recommendation import CostEstimate, Recommendation


class RecommendationRequest(BaseModel):
    """A user's shelf plus optional personalisation, submitted for recommendations."""

    user_id: str | None = Field(
        default=None,
        min_length=1,
        description="Enables rate limiting, caching and usage tracking",
    )
    books: list[RatedBook] = Field(default_factory=list)
    bio: str | None = None
    age_hint: str | None = None
    force_refresh: bool = False


class RecommendationResponse(BaseModel):
    """Recommendations produced for a request."""

    recommendations: list[Recommendation]
    source: str
    from_cache: bool
    error: str | None = None
    books_hash: str
    token_estimate: int | None = None
    cost_estimate: CostEstimate | None = None


class RateLimitStatusResponse(BaseModel):
    """Current usage against the per-user limits."""

    user_id: str
    hourly_used: int
    hourly_limit: int
    daily_used: int
    daily_limit: int
    can_request: bool


class UsageHistoryResponse(BaseModel):
    """The user's most recent generations, newest first."""

    user_id: str
    total: int
    requests: list[dict[str, Any]] = Field(default_factory=list)


class UsageStatsResponse(BaseModel):
    """Aggregate generation statistics for a user."""

    user_id: str
    total_requests: int = 0
    paid_requests: int = 0
    free_requests: int = 0
    total_cost: float = 0.0
    this_month_requests: int = 0
    last_request: str | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body.

    ``retry_after`` and ``limit`` are only set for rate-limit rejections.
    """

    error: str
    detail: str | None = None
    retry_after: int | None = None
    limit: str | None = None
