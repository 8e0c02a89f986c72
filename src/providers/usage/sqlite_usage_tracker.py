"""SQLite-backed recommendation usage tracker.

Persists one row per fresh recommendation generation to a local SQLite
database at ``data/usage.db`` for cost tracking, history and analytics.
Cache hits increment ``cache_usage_count`` on the row that produced the
cached set instead of adding a row.  Uses ``aiosqlite`` for async I/O.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.usage_tracker import IUsageTracker
from src.models.recommendation import UsageRecord
from src.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/usage.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS recommendation_requests (
    id                     INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id                TEXT    NOT NULL,
    total_books            INTEGER NOT NULL DEFAULT 0,
    average_rating         REAL,
    favorite_genres        TEXT    NOT NULL DEFAULT '[]',
    favorite_authors       TEXT    NOT NULL DEFAULT '[]',
    highly_rated_books     TEXT    NOT NULL DEFAULT '[]',
    reading_themes         TEXT    NOT NULL DEFAULT '[]',
    books_hash             TEXT    NOT NULL,
    prompt_text            TEXT    NOT NULL,
    model_used             TEXT    NOT NULL,
    provider_generated     INTEGER NOT NULL DEFAULT 0,
    recommendations        TEXT    NOT NULL DEFAULT '[]',
    recommendations_count  INTEGER NOT NULL DEFAULT 0,
    from_cache             INTEGER NOT NULL DEFAULT 0,
    tokens_used            INTEGER,
    estimated_cost         REAL,
    cache_usage_count      INTEGER,
    last_cache_used_at     TEXT,
    created_at             TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_requests_user ON recommendation_requests(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_requests_user_hash "
    "ON recommendation_requests(user_id, books_hash);",
]

_INSERT_SQL = """\
INSERT INTO recommendation_requests (
    user_id, total_books, average_rating, favorite_genres, favorite_authors,
    highly_rated_books, reading_themes, books_hash, prompt_text, model_used,
    provider_generated, recommendations, recommendations_count, from_cache,
    tokens_used, estimated_cost
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?);
"""

_SELECT_BY_ID_SQL = "SELECT * FROM recommendation_requests WHERE id = ?;"

_SELECT_LATEST_FOR_HASH_SQL = """\
SELECT id, cache_usage_count FROM recommendation_requests
WHERE user_id = ? AND books_hash = ?
ORDER BY created_at DESC, id DESC
LIMIT 1;
"""

_INCREMENT_CACHE_USAGE_SQL = """\
UPDATE recommendation_requests
SET cache_usage_count = COALESCE(cache_usage_count, 0) + 1,
    last_cache_used_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
WHERE id = ?;
"""

_JSON_COLUMNS = (
    "favorite_genres",
    "favorite_authors",
    "highly_rated_books",
    "reading_themes",
    "recommendations",
)


def _decode_row(row: aiosqlite.Row) -> dict[str, Any]:
    result = dict(row)
    for column in _JSON_COLUMNS:
        if column in result and isinstance(result[column], str):
            result[column] = json.loads(result[column])
    for column in ("provider_generated", "from_cache"):
        if column in result:
            result[column] = bool(result[column])
    return result


class SQLiteUsageTracker(IUsageTracker):
    """SQLite-backed usage tracking sink."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the requests table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("usage_db_initialized", path=str(self._db_path))

    async def record_generation(self, record: UsageRecord) -> dict[str, Any]:
        """Insert a row for a fresh generation.  Returns the stored row."""
        profile = record.profile
        params = (
            record.user_id,
            profile.total_books,
            profile.average_rating if profile.total_books else None,
            json.dumps(profile.favorite_genres),
            json.dumps(profile.favorite_authors),
            json.dumps([b.model_dump(mode="json") for b in profile.highly_rated_books]),
            json.dumps(profile.reading_themes),
            record.books_hash,
            record.prompt_text,
            record.model_used,
            int(record.provider_generated),
            json.dumps([r.model_dump(mode="json") for r in record.recommendations]),
            len(record.recommendations),
            record.tokens_used,
            record.estimated_cost,
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_INSERT_SQL, params)
                row_id = cursor.lastrowid
                await db.commit()
                cursor = await db.execute(_SELECT_BY_ID_SQL, (row_id,))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to save recommendation request: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "usage_recorded",
            user_id=record.user_id,
            request_id=row_id,
            model=record.model_used,
            recommendations=len(record.recommendations),
        )
        return _decode_row(row)

    async def record_cache_hit(
        self,
        user_id: str,
        books_hash: str,
    ) -> dict[str, Any] | None:
        """Bump the reuse counter on the newest row for this book set."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_LATEST_FOR_HASH_SQL, (user_id, books_hash))
                existing = await cursor.fetchone()
                if existing is None:
                    logger.warning(
                        "cache_hit_without_original_request",
                        user_id=user_id,
                        books_hash=books_hash,
                    )
                    return None
                await db.execute(_INCREMENT_CACHE_USAGE_SQL, (existing["id"],))
                await db.commit()
                cursor = await db.execute(_SELECT_BY_ID_SQL, (existing["id"],))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to update cache usage count: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug(
            "cache_usage_incremented",
            request_id=row["id"],
            cache_usage_count=row["cache_usage_count"],
        )
        return _decode_row(row)

    async def get_history(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Return the user's most recent rows, newest first."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM recommendation_requests WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (user_id, limit),
            )
            rows = await cursor.fetchall()
        return [_decode_row(r) for r in rows]

    async def get_request(self, request_id: int, user_id: str) -> dict[str, Any] | None:
        """Return one row if it exists and belongs to *user_id*."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM recommendation_requests WHERE id = ? AND user_id = ?",
                (request_id, user_id),
            )
            row = await cursor.fetchone()
        return _decode_row(row) if row is not None else None

    async def get_stats(self, user_id: str) -> dict[str, Any]:
        """Return aggregate usage statistics for a user."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT provider_generated, estimated_cost, created_at "
                "FROM recommendation_requests WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC",
                (user_id,),
            )
            rows = [dict(r) for r in await cursor.fetchall()]

        paid = [r for r in rows if r["provider_generated"]]
        total_cost = sum(float(r["estimated_cost"] or 0.0) for r in paid)
        month_prefix = datetime.now(tz=timezone.utc).strftime("%Y-%m")
        this_month = [r for r in rows if r["created_at"].startswith(month_prefix)]

        return {
            "total_requests": len(rows),
            "paid_requests": len(paid),
            "free_requests": len(rows) - len(paid),
            "total_cost": round(total_cost, 4),
            "this_month_requests": len(this_month),
            "last_request": rows[0]["created_at"] if rows else None,
        }

    def get_provider_name(self) -> str:
        return "sqlite_usage"
