"""SQLite-backed key-value store.

Durable substitute for the in-memory store: limiter counters and cached
recommendation sets survive restarts and can be shared by several worker
processes on one host.  Values are stored as JSON text with an optional
absolute ``expires_at`` (epoch seconds).  Uses ``aiosqlite`` for async I/O.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Callable

import aiosqlite
import structlog

from src.interfaces.kv_store import IKeyValueStore
from src.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/state.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value_json  TEXT NOT NULL,
    expires_at  REAL,
    updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_INDEX_SQL = "CREATE INDEX IF NOT EXISTS idx_kv_expires ON kv_store(expires_at);"

_UPSERT_SQL = """\
INSERT INTO kv_store (key, value_json, expires_at)
VALUES (?, ?, ?)
ON CONFLICT(key)
DO UPDATE SET value_json = excluded.value_json,
              expires_at = excluded.expires_at,
              updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_SELECT_SQL = "SELECT value_json, expires_at FROM kv_store WHERE key = ?;"

_DELETE_SQL = "DELETE FROM kv_store WHERE key = ?;"

_PRUNE_SQL = "DELETE FROM kv_store WHERE expires_at IS NOT NULL AND expires_at <= ?;"


class SQLiteKeyValueStore(IKeyValueStore):
    """Key-value store persisted to a single SQLite table.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    timer:
        Wall clock used for expiry, in epoch seconds.
    """

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        timer: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = Path(db_path)
        self._timer = timer

    async def initialize(self) -> None:
        """Create the table, and drop rows that expired while we were down."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.execute(_CREATE_INDEX_SQL)
            cursor = await db.execute(_PRUNE_SQL, (self._timer(),))
            pruned = cursor.rowcount
            await db.commit()
        logger.info("state_db_initialized", path=str(self._db_path), pruned=pruned)

    # ------------------------------------------------------------------
    # IKeyValueStore implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """Return the decoded value for *key*, deleting it if it has expired."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(_SELECT_SQL, (key,))
            row = await cursor.fetchone()
            if row is None:
                return None
            value_json, expires_at = row
            if expires_at is not None and expires_at <= self._timer():
                await db.execute(_DELETE_SQL, (key,))
                await db.commit()
                logger.debug("store_expired", key=key)
                return None
        return json.loads(value_json)

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Upsert *value* under *key*."""
        expires_at = self._timer() + ttl if ttl is not None else None
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(
                message=f"Value for {key!r} is not JSON-serialisable: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_UPSERT_SQL, (key, payload, expires_at))
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to write {key!r}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("store_set", key=key, ttl=ttl)

    async def delete(self, key: str) -> None:
        """Remove *key* (no-op if absent)."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_DELETE_SQL, (key,))
            await db.commit()

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    def get_provider_name(self) -> str:
        return "sqlite_store"
