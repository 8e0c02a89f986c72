"""FastAPI routes for the Shelfwise recommendation service.

Thin HTTP adapter over :class:`RecommendationDispatcher`; the UI layer
calls these instead of importing the library.  Service dependencies are
resolved from ``app.state`` (populated at startup by main.py's
``_build_all``) through ``Depends`` with the ``Annotated`` pattern, so
tests can swap them on ``app.state`` without patching imports.

Endpoint                                            Method  Description
-------------------------------------------------   ------  ---------------------------
/api/v1/recommendations                             POST    Generate recommendations
/api/v1/users/{user_id}/rate-limit                  GET     Limiter usage / can_request
/api/v1/users/{user_id}/recommendations/history     GET     Recent generations
/api/v1/users/{user_id}/recommendations/stats       GET     Aggregate usage and cost
/api/v1/health                                      GET     Provider availability
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from src.api.middleware import rate_limit_response
from src.api.schemas import (
    ErrorResponse,
    HealthResponse,
    RateLimitStatusResponse,
    RecommendationRequest,
    RecommendationResponse,
    UsageHistoryResponse,
    UsageStatsResponse,
)
from src.models.book import UserContext
from src.services.recommendation_dispatcher import RecommendationDispatcher
from src.utils.errors import RateLimitExceededError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_APP_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_dispatcher(request: Request) -> RecommendationDispatcher:
    """Return the recommendation dispatcher from application state."""
    return request.app.state.dispatcher


def _get_usage_tracker(request: Request) -> Any:
    """Return the usage tracker from application state, or ``None``."""
    return getattr(request.app.state, "usage_tracker", None)


def _get_llm_provider(request: Request) -> Any:
    """Return the LLM provider from application state, or ``None``."""
    return getattr(request.app.state, "llm_provider", None)


DispatcherDep = Annotated[RecommendationDispatcher, Depends(_get_dispatcher)]
UsageTrackerDep = Annotated[Any, Depends(_get_usage_tracker)]
LLMProviderDep = Annotated[Any, Depends(_get_llm_provider)]


# ---------------------------------------------------------------------------
# Recommendation endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/recommendations",
    response_model=RecommendationResponse,
    responses={429: {"model": ErrorResponse}},
    summary="Generate personalised book recommendations",
)
async def create_recommendations(
    body: RecommendationRequest,
    dispatcher: DispatcherDep,
) -> RecommendationResponse | JSONResponse:
    """Generate recommendations from the submitted shelf.

    Returns 429 with a ``Retry-After`` header (when computable) if the
    user has spent their request budget.  Provider outages never fail
    the request; the response ``source`` reads ``fallback`` instead.
    """
    context = None
    if body.bio or body.age_hint:
        context = UserContext(bio=body.bio, age_hint=body.age_hint)

    try:
        result = await dispatcher.generate(
            body.books,
            user_context=context,
            user_id=body.user_id,
            force_refresh=body.force_refresh,
        )
    except RateLimitExceededError as exc:
        return rate_limit_response(exc)

    return RecommendationResponse(
        recommendations=result.recommendations,
        source=result.source.value,
        from_cache=result.from_cache,
        error=result.error,
        books_hash=result.books_hash,
        token_estimate=result.token_estimate,
        cost_estimate=result.cost_estimate,
    )


@router.get(
    "/users/{user_id}/rate-limit",
    response_model=RateLimitStatusResponse,
    summary="Get the user's rate-limit usage",
)
async def get_rate_limit_status(
    user_id: str,
    dispatcher: DispatcherDep,
) -> RateLimitStatusResponse:
    """Return hourly and daily usage against the limits."""
    status = await dispatcher.rate_limiter.status(user_id)
    return RateLimitStatusResponse(user_id=user_id, **status.model_dump())


@router.get(
    "/users/{user_id}/recommendations/history",
    response_model=UsageHistoryResponse,
    responses={503: {"model": ErrorResponse}},
    summary="List the user's recent recommendation requests",
)
async def get_recommendation_history(
    user_id: str,
    usage: UsageTrackerDep,
    limit: int = Query(default=10, ge=1, le=100),
) -> UsageHistoryResponse:
    """Return the most recent generations for *user_id*, newest first."""
    if usage is None:
        raise HTTPException(status_code=503, detail="Usage tracking not available")

    rows = await usage.get_history(user_id, limit=limit)
    return UsageHistoryResponse(user_id=user_id, total=len(rows), requests=rows)


@router.get(
    "/users/{user_id}/recommendations/stats",
    response_model=UsageStatsResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Get aggregate recommendation usage for a user",
)
async def get_recommendation_stats(
    user_id: str,
    usage: UsageTrackerDep,
) -> UsageStatsResponse:
    """Return totals, paid/free split and estimated spend."""
    if usage is None:
        raise HTTPException(status_code=503, detail="Usage tracking not available")

    stats = await usage.get_stats(user_id)
    return UsageStatsResponse(user_id=user_id, **stats)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(request: Request, llm: LLMProviderDep) -> HealthResponse:
    """Return application health, version, and provider availability.

    A missing provider only degrades the service: recommendations still
    come from the fallback catalog.
    """
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    llm_ok = llm is not None and llm.is_available()
    providers["llm"] = llm_ok
    if llm is not None:
        providers["llm_name"] = llm.get_provider_name()
        providers["llm_model"] = llm.get_model_name()

    return HealthResponse(
        status="healthy" if llm_ok else "degraded",
        version=_APP_VERSION,
        providers=providers,
    )
