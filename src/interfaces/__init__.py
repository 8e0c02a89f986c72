"""Public interface definitions for all external collaborators.

The recommendation pipeline reaches its collaborators only through the
abstract base classes defined here.  Concrete adapters implement them and
are injected at startup by ``src/main.py``, so unit tests can pass fakes
or ``MagicMock(spec=...)`` objects and no service imports a vendor SDK.

CONCRETE PROVIDER MAP:
    Interface         →  Concrete implementations (in src/providers/)
    ──────────────────────────────────────────────────────────────────
    ILLMProvider      →  OpenAILLMProvider, AnthropicLLMProvider,
                         OllamaLLMProvider
    IKeyValueStore    →  MemoryKeyValueStore, SQLiteKeyValueStore
    IUsageTracker     →  SQLiteUsageTracker
"""

from src.interfaces.kv_store import IKeyValueStore
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.usage_tracker import IUsageTracker

__all__ = [
    "IKeyValueStore",
    "ILLMProvider",
    "IUsageTracker",
]
