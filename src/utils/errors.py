"""Custom exception hierarchy for Shelfwise.

All application exceptions inherit from :class:`ShelfwiseError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "openai", "sqlite_usage", "memory_store") caused the
failure.

The hierarchy is organized by how the recommendation pipeline reacts:

    ShelfwiseError  (base -- catch-all for any shelfwise error)
    +-- RateLimitExceededError   (per-user request budget spent; surfaced)
    +-- LLMError                 (provider call failed; triggers fallback)
    +-- ProviderUnavailableError (no provider configured / reachable)
    +-- ResponseParseError       (provider body not a recommendation list)
    +-- PersistenceError         (cache / state / usage write failed; logged)
    +-- ConfigurationError       (startup / missing config)

Only :class:`RateLimitExceededError` ever reaches the caller of
:meth:`RecommendationDispatcher.generate`.  Everything else degrades to
the fallback catalog or is logged and dropped.
"""

from __future__ import annotations


class ShelfwiseError(Exception):
    """Base exception for all Shelfwise errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external collaborator triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    scanning, e.g. ``[openai] Request timed out``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Abuse limits
# ---------------------------------------------------------------------------

class RateLimitExceededError(ShelfwiseError):
    """Raised when a user has spent their recommendation request budget.

    ``retry_after`` is the number of seconds until the gate opens again,
    or ``None`` when it is not computed (the daily cap).  ``code`` is the
    machine-readable identifier clients switch on.
    """

    code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: int | None = None,
        limit: str | None = None,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._retry_after = retry_after
        self._limit = limit

    @property
    def reason(self) -> str:
        return self._message

    @property
    def retry_after(self) -> int | None:
        return self._retry_after

    @property
    def limit(self) -> str | None:
        """Which gate rejected the request: ``cooldown``, ``hourly`` or ``daily``."""
        return self._limit


# ---------------------------------------------------------------------------
# Text-generation provider errors
# ---------------------------------------------------------------------------

class LLMError(ShelfwiseError):
    """Raised when an LLM API call fails or returns an empty response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(ShelfwiseError):
    """Raised when no text-generation provider is configured or reachable."""

    def __init__(
        self,
        message: str = "Text-generation provider is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ResponseParseError(ShelfwiseError):
    """Raised when a provider body cannot be read as a recommendation list."""

    def __init__(
        self,
        message: str = "Provider response could not be parsed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage / configuration errors
# ---------------------------------------------------------------------------

class PersistenceError(ShelfwiseError):
    """Raised when a state, cache or usage-tracking write fails."""

    def __init__(
        self,
        message: str = "Persistence operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(ShelfwiseError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
