"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ─────────────────────────────────────────────────
#
# Values are read from two sources (in priority order):
#
#   1. **Environment variables** — e.g. OPENAI_API_KEY=sk-abc123
#   2. **.env file** — key=value lines in the project root .env file
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
# below apply when neither source sets a field.
#
# The rate-limit, cache and prompt-budget defaults are the thresholds the
# recommendation feature has always shipped with (2/hour, 5/day, a
# 5-minute cooldown, a 1-hour cache, a ~1,000 token prompt).  They are
# configuration, not derived values.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Shelfwise application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Text-generation providers ===
    # Empty string = "not configured"; provider selection in main.py skips
    # providers with empty keys and falls through to the next.
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_text_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1"

    # === Generation ===
    generation_temperature: float = 0.7
    generation_max_output_tokens: int = 1500
    provider_timeout_seconds: float = 25.0
    # Global cache bypass, useful when testing prompt changes.
    force_refresh: bool = False

    # === Rate limiting (per user) ===
    rate_limit_max_per_hour: int = 2
    rate_limit_max_per_day: int = 5
    rate_limit_min_interval_seconds: int = 300
    # Size of the in-memory limiter store; one entry per user active in the last day.
    rate_limit_max_tracked_users: int = 100_000

    # === Recommendation cache ===
    recommendation_cache_ttl_seconds: int = 3600
    recommendation_cache_max_entries: int = 10_000

    # === Prompt budget & pricing (USD per 1M tokens) ===
    prompt_max_tokens: int = 1000
    prompt_max_field_chars: int = 200
    input_cost_per_million: float = 0.15
    output_cost_per_million: float = 0.60
    assumed_output_tokens: int = 1500

    # === Storage ===
    state_backend: str = "memory"  # "memory" or "sqlite"
    state_db_path: str = "data/state.db"
    usage_db_path: str = "data/usage.db"

    # === App Config ===
    app_name: str = "shelfwise"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return provider names in selection order that look configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
