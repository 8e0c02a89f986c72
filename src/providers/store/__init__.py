"""Key-value store providers.

Hold the per-user rate-limit state and cached recommendation sets.

MemoryKeyValueStore is a per-process store — fast but lost on restart
and not shared between workers.  SQLiteKeyValueStore persists the same
records to disk.  Both implement IKeyValueStore, so the choice is made
once in main.py (``STATE_BACKEND``) without touching business logic.
"""

from src.providers.store.memory_store import MemoryKeyValueStore
from src.providers.store.sqlite_store import SQLiteKeyValueStore

__all__ = ["MemoryKeyValueStore", "SQLiteKeyValueStore"]
