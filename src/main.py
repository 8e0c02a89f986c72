"""Shelfwise FastAPI application entry point.

Wires the recommendation core (limiter, cache, budgeter, fallback scorer,
dispatcher) to its collaborators (LLM provider, key-value store, usage
tracker) via dependency injection.  Loads configuration from ``.env`` and
``config/config.yaml`` and configures structured logging.

Also exposes :func:`build_dispatcher` for callers that use the core as a
library without the web server.
"""

from __future__ import annotations

import random
import time
from contextlib import asynccontextmanager
from typing import Any, Callable

import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.loader import load_config, settings_from_config
from src.config.settings import Settings
from src.interfaces.kv_store import IKeyValueStore
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.usage_tracker import IUsageTracker
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.providers.store.memory_store import MemoryKeyValueStore
from src.providers.store.sqlite_store import SQLiteKeyValueStore
from src.providers.usage.sqlite_usage_tracker import SQLiteUsageTracker
from src.services.fallback_scorer import FallbackScorer
from src.services.prompt_budgeter import PromptBudgeter
from src.services.rate_limiter import RateLimiter
from src.services.recommendation_cache import RecommendationCache
from src.services.recommendation_dispatcher import RecommendationDispatcher
from src.utils.errors import ConfigurationError
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

config = load_config()
settings = settings_from_config(config)

configure_logging(
    log_level=settings.log_level,
    app_env=settings.app_env,
    service=settings.app_name,
)
_logger: structlog.BoundLogger = get_logger(__name__)

_STATE_BACKENDS = ("memory", "sqlite")


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first LLM provider with credentials configured.

    Priority order: Anthropic -> OpenAI -> Ollama.  Ollama needs no key, so
    it is the last resort; if it is not actually running, its calls fail
    and the dispatcher serves the fallback catalog.
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


def _build_state_store(app_settings: Settings) -> IKeyValueStore:
    """Return the key-value store for cached recommendation sets."""
    backend = app_settings.state_backend.lower()
    if backend not in _STATE_BACKENDS:
        raise ConfigurationError(
            message=f"Unknown state_backend {app_settings.state_backend!r}; "
            f"expected one of {', '.join(_STATE_BACKENDS)}",
        )
    if backend == "sqlite":
        return SQLiteKeyValueStore(db_path=app_settings.state_db_path)
    return MemoryKeyValueStore(max_size=app_settings.recommendation_cache_max_entries)


def _limiter_store_for(cache_store: IKeyValueStore | None, app_settings: Settings) -> IKeyValueStore:
    """Return the store for rate-limit state given the cache's store.

    SQLite never evicts, so limiter rows can live beside cache rows.  A
    size-bounded memory store would let cache writes push limiter state
    out, so the limiter gets its own.
    """
    if cache_store is not None and not isinstance(cache_store, MemoryKeyValueStore):
        return cache_store
    return MemoryKeyValueStore(max_size=app_settings.rate_limit_max_tracked_users)


# ---------------------------------------------------------------------------
# Library entry point
# ---------------------------------------------------------------------------


def build_dispatcher(
    custom_settings: Settings | None = None,
    *,
    llm_provider: ILLMProvider | None = None,
    store: IKeyValueStore | None = None,
    limiter_store: IKeyValueStore | None = None,
    usage_tracker: IUsageTracker | None = None,
    clock: Callable[[], float] = time.time,
    rng: random.Random | None = None,
) -> RecommendationDispatcher:
    """Construct a :class:`RecommendationDispatcher` from settings.

    Parameters
    ----------
    custom_settings:
        Application settings.  Uses module-level ``settings`` if not provided.
    llm_provider:
        Text-generation backend; ``None`` runs fallback-only.
    store:
        Key-value store for cached recommendation sets.  Defaults to an
        in-memory store.
    limiter_store:
        Key-value store for rate-limit state.  Defaults to *store* when
        that is durable, otherwise to a dedicated in-memory store.
    usage_tracker:
        Optional usage-tracking sink.
    clock:
        Wall-clock source for the limiter and cache.
    rng:
        Random source for the fallback scorer's general path.

    Returns
    -------
    RecommendationDispatcher
        Ready to call :meth:`~RecommendationDispatcher.generate`.
    """
    app_settings = custom_settings or settings
    cache_store = store or MemoryKeyValueStore(
        max_size=app_settings.recommendation_cache_max_entries,
    )
    limiter_store = limiter_store or _limiter_store_for(store, app_settings)
    return RecommendationDispatcher(
        rate_limiter=RateLimiter.from_settings(limiter_store, app_settings, clock=clock),
        cache=RecommendationCache.from_settings(cache_store, app_settings, clock=clock),
        budgeter=PromptBudgeter.from_settings(app_settings),
        fallback_scorer=FallbackScorer(rng=rng),
        llm_provider=llm_provider,
        usage_tracker=usage_tracker,
        temperature=app_settings.generation_temperature,
        max_output_tokens=app_settings.generation_max_output_tokens,
        provider_timeout_seconds=app_settings.provider_timeout_seconds,
        force_refresh=app_settings.force_refresh,
    )


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    llm_provider = _build_llm_provider(app_settings)
    state_store = _build_state_store(app_settings)
    limiter_store = _limiter_store_for(state_store, app_settings)
    usage_tracker = SQLiteUsageTracker(db_path=app_settings.usage_db_path)

    dispatcher = build_dispatcher(
        app_settings,
        llm_provider=llm_provider,
        store=state_store,
        limiter_store=limiter_store,
        usage_tracker=usage_tracker,
    )

    provider_registry: dict[str, Any] = {
        "state_store": state_store.get_provider_name(),
        "limiter_store": limiter_store.get_provider_name(),
        "usage_tracker": usage_tracker.get_provider_name(),
        "configured_llms": app_settings.get_available_llm_providers(),
    }

    return {
        "dispatcher": dispatcher,
        "llm_provider": llm_provider,
        "state_store": state_store,
        "limiter_store": limiter_store,
        "usage_tracker": usage_tracker,
        "provider_registry": provider_registry,
        "primary_llm_name": llm_provider.get_provider_name(),
    }


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    # Create SQLite tables if needed.
    await components["usage_tracker"].initialize()
    state_store = components["state_store"]
    if isinstance(state_store, SQLiteKeyValueStore):
        await state_store.initialize()

    _logger.info(
        "app_startup",
        version="0.1.0",
        environment=settings.app_env,
        primary_llm=components["primary_llm_name"],
        state_backend=state_store.get_provider_name(),
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Shelfwise API",
        version="0.1.0",
        description=(
            "Personalised book recommendations from a reader's rated shelf, "
            "with per-user rate limits, content-keyed caching and a "
            "catalog fallback when the text-generation provider is down."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
