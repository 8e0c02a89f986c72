"""Per-user request gate for recommendation generation.

Three checks run in a fixed order, and the first one to fail rejects the
request:

1. **Cooldown** -- at least ``min_interval_seconds`` since the user's
   previous recorded request.
2. **Hourly cap** -- fewer than ``max_per_hour`` recorded requests in the
   trailing hour (sliding window, not calendar buckets).
3. **Daily cap** -- fewer than ``max_per_day`` recorded requests since the
   daily counter was last reset (reset once 24h have passed since
   ``last_reset``).  No retry-after is computed for this one.

:meth:`RateLimiter.check` never mutates the counters; a request only
counts once :meth:`RateLimiter.record` is called, so a cache hit can pass
the gate without spending the budget.  Callers that must not race
between the two hold :meth:`RateLimiter.lock` around the pair.
"""

from __future__ import annotations

import asyncio
import math
import time
import weakref
from typing import Callable

from src.config.settings import Settings
from src.interfaces.kv_store import IKeyValueStore
from src.models.recommendation import RateLimitDecision, RateLimitState, RateLimitStatus
from src.utils.logging import get_logger

_HOUR_SECONDS = 60 * 60
_DAY_SECONDS = 24 * _HOUR_SECONDS


def rate_limit_key(user_id: str) -> str:
    return f"rate_limit:{user_id}"


class RateLimiter:
    """Sliding-window + daily-cap + cooldown limiter over an :class:`IKeyValueStore`.

    Parameters
    ----------
    store:
        Where per-user :class:`RateLimitState` records live.  Records are
        written with a one-day TTL; once that passes every window they
        could hold has lapsed anyway.  The store must not evict them
        early, so do not share a size-bounded LRU store with the cache.
    max_per_hour, max_per_day, min_interval_seconds:
        Thresholds.  The defaults are the values the feature has always
        shipped with.
    clock:
        Wall-clock source in epoch seconds; tests inject a fake.
    """

    def __init__(
        self,
        store: IKeyValueStore,
        max_per_hour: int = 2,
        max_per_day: int = 5,
        min_interval_seconds: float = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._max_per_hour = max_per_hour
        self._max_per_day = max_per_day
        self._min_interval = min_interval_seconds
        self._clock = clock
        # Entries vanish once no request holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._logger = get_logger(__name__)

    @classmethod
    def from_settings(
        cls,
        store: IKeyValueStore,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ) -> RateLimiter:
        return cls(
            store=store,
            max_per_hour=settings.rate_limit_max_per_hour,
            max_per_day=settings.rate_limit_max_per_day,
            min_interval_seconds=settings.rate_limit_min_interval_seconds,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def lock(self, user_id: str) -> asyncio.Lock:
        """Return the lock serialising check-then-record for *user_id*."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def check(self, user_id: str) -> RateLimitDecision:
        """Decide whether *user_id* may start a new generation now.

        A store failure lets the request through: the limiter is an abuse
        guard and must not take the feature down with it.
        """
        try:
            state = await self._load(user_id, create=True)
        except Exception as exc:  # noqa: BLE001
            self._logger.error("rate_limit_check_failed", user_id=user_id, error=str(exc))
            return RateLimitDecision(allowed=True)

        now = self._clock()
        self._apply_daily_reset(state, now)

        if state.last_request_at is not None and now - state.last_request_at < self._min_interval:
            retry_after = math.ceil(self._min_interval - (now - state.last_request_at))
            return self._reject(
                user_id,
                limit="cooldown",
                reason=(
                    f"Please wait {math.ceil(retry_after / 60)} minute(s) "
                    "before requesting again."
                ),
                retry_after=retry_after,
            )

        recent = self._recent(state, now)
        if len(recent) >= self._max_per_hour:
            retry_after = math.ceil(min(recent) + _HOUR_SECONDS - now)
            return self._reject(
                user_id,
                limit="hourly",
                reason=(
                    f"Hourly limit reached ({self._max_per_hour} requests/hour). "
                    f"Please try again in {math.ceil(retry_after / 60)} minute(s)."
                ),
                retry_after=retry_after,
            )

        if state.daily_count >= self._max_per_day:
            return self._reject(
                user_id,
                limit="daily",
                reason=(
                    f"Daily limit reached ({self._max_per_day} requests/day). "
                    "Please try again tomorrow."
                ),
                retry_after=None,
            )

        return RateLimitDecision(allowed=True)

    async def record(self, user_id: str) -> RateLimitState:
        """Count one generation against *user_id*'s budget and persist it."""
        state = await self._load(user_id, create=False)
        now = self._clock()
        self._apply_daily_reset(state, now)

        state.requests.append(now)
        state.requests = self._recent(state, now)
        state.daily_count += 1
        state.last_request_at = now

        await self._store.set(rate_limit_key(user_id), state.model_dump(), ttl=_DAY_SECONDS)
        self._logger.info(
            "rate_limit_recorded",
            user_id=user_id,
            hourly_used=len(state.requests),
            daily_used=state.daily_count,
        )
        return state

    async def status(self, user_id: str) -> RateLimitStatus:
        """Report current usage against the hourly and daily limits."""
        try:
            state = await self._load(user_id, create=False)
        except Exception as exc:  # noqa: BLE001
            self._logger.error("rate_limit_status_failed", user_id=user_id, error=str(exc))
            state = RateLimitState()

        now = self._clock()
        hourly_used = len(self._recent(state, now))
        daily_used = 0 if self._daily_window_elapsed(state, now) else state.daily_count
        return RateLimitStatus(
            hourly_used=hourly_used,
            hourly_limit=self._max_per_hour,
            daily_used=daily_used,
            daily_limit=self._max_per_day,
            can_request=hourly_used < self._max_per_hour and daily_used < self._max_per_day,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _load(self, user_id: str, *, create: bool) -> RateLimitState:
        raw = await self._store.get(rate_limit_key(user_id))
        if raw is not None:
            return RateLimitState.model_validate(raw)
        state = RateLimitState()
        if create:
            await self._store.set(rate_limit_key(user_id), state.model_dump(), ttl=_DAY_SECONDS)
        return state

    @staticmethod
    def _recent(state: RateLimitState, now: float) -> list[float]:
        window_start = now - _HOUR_SECONDS
        return [ts for ts in state.requests if ts > window_start]

    @staticmethod
    def _daily_window_elapsed(state: RateLimitState, now: float) -> bool:
        return state.last_reset is None or now - state.last_reset > _DAY_SECONDS

    def _apply_daily_reset(self, state: RateLimitState, now: float) -> None:
        if self._daily_window_elapsed(state, now):
            state.daily_count = 0
            state.last_reset = now

    def _reject(
        self,
        user_id: str,
        *,
        limit: str,
        reason: str,
        retry_after: int | None,
    ) -> RateLimitDecision:
        self._logger.info(
            "rate_limit_rejected",
            user_id=user_id,
            limit=limit,
            retry_after=retry_after,
        )
        return RateLimitDecision(
            allowed=False,
            reason=reason,
            retry_after=retry_after,
            limit=limit,
        )
