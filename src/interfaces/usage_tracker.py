"""Abstract base class for the recommendation usage-tracking sink.

Every generation that was not served from cache is recorded with the
profile summary, prompt, model, token and cost estimates, and the
recommendations produced.  Cache hits only bump a reuse counter on the
record that originally produced the cached set.  Implementations may use
SQLite (local), PostgreSQL, or a hosted database.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.models.recommendation import UsageRecord


class IUsageTracker(ABC):
    """Contract for durable recommendation usage records.

    All operations are async to support network-backed stores.  Write
    failures raise :class:`~src.utils.errors.PersistenceError`; the
    dispatcher logs and swallows them.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    async def record_generation(self, record: UsageRecord) -> dict[str, Any]:
        """Insert a new usage row for a fresh (provider or fallback) generation.

        Returns
        -------
        dict
            The stored row, including its ``id`` and ``created_at``.
        """

    @abstractmethod
    async def record_cache_hit(
        self,
        user_id: str,
        books_hash: str,
    ) -> dict[str, Any] | None:
        """Increment the reuse counter on the newest row for this book set.

        Never creates a row.  Returns the updated row, or ``None`` when no
        original request exists for ``(user_id, books_hash)``.
        """

    @abstractmethod
    async def get_history(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Return the user's most recent usage rows, newest first."""

    @abstractmethod
    async def get_request(self, request_id: int, user_id: str) -> dict[str, Any] | None:
        """Return a single row, only if it belongs to *user_id*."""

    @abstractmethod
    async def get_stats(self, user_id: str) -> dict[str, Any]:
        """Return aggregate usage statistics for a user.

        Returns
        -------
        dict
            Contains ``total_requests``, ``paid_requests``,
            ``free_requests``, ``total_cost``, ``this_month_requests`` and
            ``last_request``.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
