"""Usage-tracking providers.

SQLiteUsageTracker records every fresh recommendation generation (and the
reuse count of cached ones) for cost tracking and the history view.
"""

from src.providers.usage.sqlite_usage_tracker import SQLiteUsageTracker

__all__ = ["SQLiteUsageTracker"]
