"""Recommendation generation dispatcher.

Orchestrates one request end to end:

    rate-limit check -> profile + content hash -> cache lookup
    -> budgeted prompt -> provider call -> normalise + score
    (or fallback catalog) -> cache write -> rate-limit record
    -> usage record

Failure policy
--------------
Only :class:`~src.utils.errors.RateLimitExceededError` reaches the caller.
A provider that is missing, times out, errors or returns something that
is not a recommendation array sends the request down the fallback path,
so the user always gets a result.  Cache, limiter and usage-tracking
writes that fail are logged and dropped.

Concurrency
-----------
For a known user the whole check-then-record sequence runs under the
rate limiter's per-user lock, so two in-flight requests cannot both pass
the same window.  If the caller cancels while the provider call is in
flight, ``CancelledError`` propagates before anything is cached or
recorded.
"""

from __future__ import annotations

import asyncio
import contextlib
import math
from typing import Any, Iterable

import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.usage_tracker import IUsageTracker
from src.models.book import RatedBook, ReadingProfile, UserContext
from src.models.recommendation import (
    BuiltPrompt,
    GenerationResult,
    GenerationSource,
    Recommendation,
    RecommendationSource,
    UsageRecord,
)
from src.services.fallback_scorer import FallbackScorer
from src.services.profile_analyzer import analyze_reading_profile
from src.services.prompt_budgeter import PromptBudgeter
from src.services.rate_limiter import RateLimiter
from src.services.recommendation_cache import RecommendationCache, compute_books_hash
from src.services.response_normalizer import normalize_provider_response
from src.utils.errors import (
    LLMError,
    ProviderUnavailableError,
    RateLimitExceededError,
    ResponseParseError,
)
from src.utils.logging import get_logger

SYSTEM_PROMPT = (
    "You are a helpful book recommendation assistant. "
    "Always respond with valid JSON only."
)

FALLBACK_MODEL_NAME = "fallback"

_MAX_PROVIDER_ITEMS = 10
_PROVIDER_BASE_SCORE = 85
_POSITION_BONUS = 1.5
_PREFERENCE_MENTION_BONUS = 5
_KNOWN_ITEM_FIELDS = ("title", "author", "reason")


def score_provider_items(
    items: list[dict[str, Any]],
    profile: ReadingProfile,
) -> list[Recommendation]:
    """Score normalised provider items and sort them best first.

    Each of the first 10 items starts at 85, gains ``(10 - index) * 1.5``
    for its position, and +5 for every favourite genre or author named in
    its reason.  Scores are rounded half up and capped at 100.
    """
    genres = [g.strip().lower() for g in profile.favorite_genres if g.strip()]
    authors = [a.strip().lower() for a in profile.favorite_authors if a.strip()]

    scored: list[Recommendation] = []
    for index, item in enumerate(items[:_MAX_PROVIDER_ITEMS]):
        reason = item.get("reason", "")
        reason_lower = reason.lower()
        score = _PROVIDER_BASE_SCORE + (_MAX_PROVIDER_ITEMS - index) * _POSITION_BONUS
        score += _PREFERENCE_MENTION_BONUS * sum(1 for g in genres if g in reason_lower)
        score += _PREFERENCE_MENTION_BONUS * sum(1 for a in authors if a in reason_lower)

        scored.append(
            Recommendation(
                title=item["title"],
                author=item.get("author", ""),
                reason=reason,
                score=min(100, math.floor(score + 0.5)),
                source=RecommendationSource.PROVIDER,
                extra={k: v for k, v in item.items() if k not in _KNOWN_ITEM_FIELDS},
            )
        )

    scored.sort(key=lambda rec: rec.score, reverse=True)
    return scored


class RecommendationDispatcher:
    """Turns a user's rated books into a scored recommendation set.

    Dependencies are injected so the core never knows which provider,
    store or tracking sink is behind them.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        cache: RecommendationCache,
        budgeter: PromptBudgeter,
        fallback_scorer: FallbackScorer,
        llm_provider: ILLMProvider | None = None,
        usage_tracker: IUsageTracker | None = None,
        temperature: float = 0.7,
        max_output_tokens: int = 1500,
        provider_timeout_seconds: float = 25.0,
        force_refresh: bool = False,
    ) -> None:
        """Initialise the dispatcher with its collaborators.

        Parameters
        ----------
        rate_limiter:
            Per-user request gate.
        cache:
            Content-keyed cache of previous results.
        budgeter:
            Builds the provider prompt under the token ceiling.
        fallback_scorer:
            Catalog recommender used whenever the provider path fails.
        llm_provider:
            Text-generation backend.  ``None`` means every request uses
            the fallback catalog.
        usage_tracker:
            Optional durable sink for usage records.
        temperature, max_output_tokens:
            Passed through to the provider.
        provider_timeout_seconds:
            Hard bound on the provider call; expiry counts as a failure.
        force_refresh:
            Global cache bypass, on top of the per-call flag.
        """
        self._rate_limiter = rate_limiter
        self._cache = cache
        self._budgeter = budgeter
        self._fallback = fallback_scorer
        self._llm = llm_provider
        self._usage = usage_tracker
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._timeout = provider_timeout_seconds
        self._force_refresh = force_refresh
        self._logger = get_logger(__name__)

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def usage_tracker(self) -> IUsageTracker | None:
        return self._usage

    @property
    def llm_provider(self) -> ILLMProvider | None:
        return self._llm

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        rated_books: Iterable[RatedBook],
        user_context: UserContext | None = None,
        user_id: str | None = None,
        force_refresh: bool = False,
    ) -> GenerationResult:
        """Produce recommendations for *rated_books*.

        Parameters
        ----------
        rated_books:
            Every book on the user's shelf.  Only 4+ star books shape the
            profile; all of them are excluded from the fallback picks.
        user_context:
            Optional bio and reader-context hint for the prompt.
        user_id:
            Enables rate limiting, caching and usage tracking.  Anonymous
            calls skip all three.
        force_refresh:
            Skip the cache lookup.  The fresh result is still cached.

        Returns
        -------
        GenerationResult
            Never empty-handed on provider trouble: the fallback catalog
            fills in and ``error`` says why.

        Raises
        ------
        RateLimitExceededError
            When *user_id* has spent their request budget.
        """
        books = list(rated_books)
        guard = (
            self._rate_limiter.lock(user_id) if user_id is not None else contextlib.nullcontext()
        )
        with structlog.contextvars.bound_contextvars(user_id=user_id):
            async with guard:
                return await self._generate(books, user_context, user_id, force_refresh)

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    async def _generate(
        self,
        books: list[RatedBook],
        user_context: UserContext | None,
        user_id: str | None,
        force_refresh: bool,
    ) -> GenerationResult:
        if user_id is not None:
            decision = await self._rate_limiter.check(user_id)
            if not decision.allowed:
                raise RateLimitExceededError(
                    message=decision.reason or "Rate limit exceeded",
                    retry_after=decision.retry_after,
                    limit=decision.limit,
                )

        profile = analyze_reading_profile(books)
        books_hash = compute_books_hash(books)

        if user_id is not None and not (force_refresh or self._force_refresh):
            cached = await self._cache_lookup(user_id, books_hash)
            if cached is not None:
                return cached

        prompt = self._budgeter.build(profile, user_context)
        recommendations, error = await self._call_provider(prompt, profile)
        if recommendations is None:
            recommendations = self._fallback.recommend(profile, books)
            source = GenerationSource.FALLBACK
        else:
            source = GenerationSource.PROVIDER

        # Reaching this point means the request was not abandoned.
        if user_id is not None:
            await self._persist(user_id, books_hash, profile, prompt, recommendations, source)

        self._logger.info(
            "generation_complete",
            source=source.value,
            count=len(recommendations),
            books_hash=books_hash,
            token_estimate=prompt.token_estimate,
        )
        return GenerationResult(
            recommendations=recommendations,
            source=source,
            error=error,
            books_hash=books_hash,
            token_estimate=prompt.token_estimate,
            cost_estimate=prompt.cost_estimate,
        )

    async def _cache_lookup(self, user_id: str, books_hash: str) -> GenerationResult | None:
        try:
            entry = await self._cache.get(user_id, books_hash)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("recommendation_cache_read_failed", error=str(exc))
            return None
        if entry is None:
            return None

        if self._usage is not None:
            try:
                await self._usage.record_cache_hit(user_id, books_hash)
            except Exception as exc:  # noqa: BLE001
                self._logger.warning("usage_record_failed", kind="cache_hit", error=str(exc))

        return GenerationResult(
            recommendations=entry.recommendations,
            source=GenerationSource.CACHE,
            books_hash=books_hash,
        )

    async def _call_provider(
        self,
        prompt: BuiltPrompt,
        profile: ReadingProfile,
    ) -> tuple[list[Recommendation] | None, str | None]:
        """Return scored provider items, or ``(None, reason)`` on any failure."""
        provider_name = self._llm.get_provider_name() if self._llm is not None else None
        try:
            if self._llm is None or not self._llm.is_available():
                raise ProviderUnavailableError(
                    message="No text-generation provider is available",
                    provider_name=provider_name,
                )
            content = await asyncio.wait_for(
                self._llm.complete(
                    system_prompt=SYSTEM_PROMPT,
                    user_prompt=prompt.text,
                    temperature=self._temperature,
                    max_tokens=self._max_output_tokens,
                ),
                timeout=self._timeout,
            )
            normalized = normalize_provider_response(content)
            if not normalized.ok:
                raise ResponseParseError(
                    message=normalized.error or "Unusable provider response",
                    provider_name=provider_name,
                )
        except ProviderUnavailableError as exc:
            self._logger.info("provider_unavailable", provider=provider_name)
            return None, exc.message
        except asyncio.TimeoutError:
            self._logger.warning(
                "provider_call_failed",
                provider=provider_name,
                error=f"timed out after {self._timeout:g}s",
            )
            return None, f"Provider timed out after {self._timeout:g}s"
        except ResponseParseError as exc:
            self._logger.warning(
                "provider_response_unparseable",
                provider=provider_name,
                error=exc.message,
            )
            return None, str(exc)
        except LLMError as exc:
            self._logger.warning("provider_call_failed", provider=provider_name, error=str(exc))
            return None, str(exc)
        except Exception as exc:  # noqa: BLE001
            self._logger.error(
                "provider_call_failed",
                provider=provider_name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return None, f"[{provider_name}] {exc}"

        return score_provider_items(normalized.items, profile), None

    async def _persist(
        self,
        user_id: str,
        books_hash: str,
        profile: ReadingProfile,
        prompt: BuiltPrompt,
        recommendations: list[Recommendation],
        source: GenerationSource,
    ) -> None:
        """Cache the result, spend the rate budget and write the usage record.

        Each write is independent: one failing does not skip the others.
        """
        if recommendations:
            try:
                await self._cache.put(user_id, books_hash, recommendations, source)
            except Exception as exc:  # noqa: BLE001
                self._logger.warning("recommendation_cache_write_failed", error=str(exc))

        try:
            await self._rate_limiter.record(user_id)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("rate_limit_record_failed", error=str(exc))

        if self._usage is None:
            return
        from_provider = source == GenerationSource.PROVIDER
        record = UsageRecord(
            user_id=user_id,
            profile=profile,
            books_hash=books_hash,
            prompt_text=prompt.text,
            model_used=self._llm.get_model_name() if from_provider and self._llm else FALLBACK_MODEL_NAME,
            provider_generated=from_provider,
            tokens_used=prompt.token_estimate,
            estimated_cost=prompt.cost_estimate.total_cost if from_provider else None,
            recommendations=recommendations,
        )
        try:
            await self._usage.record_generation(record)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("usage_record_failed", kind="generation", error=str(exc))
