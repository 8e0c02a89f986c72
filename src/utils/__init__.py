"""Utility modules for Shelfwise.

Available utility modules (re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at ShelfwiseError;
  the dispatcher decides per subclass whether a failure surfaces, falls
  back to the catalog, or is logged and dropped.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    LLMError,
    PersistenceError,
    ProviderUnavailableError,
    RateLimitExceededError,
    ResponseParseError,
    ShelfwiseError,
)

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "LLMError",
    "PersistenceError",
    "ProviderUnavailableError",
    "RateLimitExceededError",
    "ResponseParseError",
    "ShelfwiseError",
    "configure_logging",
    "get_logger",
]
