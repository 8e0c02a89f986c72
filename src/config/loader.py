"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. Settings defaults   — Field defaults in settings.py
#   2. config/config.yaml  — Static defaults checked into the repo
#   3. .env file           — Local developer overrides (not committed)
#   4. Environment vars    — Set at deploy time
#
# load_config() returns the merged dict; settings_from_config() turns the
# ``app``, ``logging`` and ``recommendations`` sections into a Settings
# object so operators can tune limits and log output in YAML while
# secrets stay in the environment.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings

# (YAML section, YAML key) -> Settings field.
_YAML_FIELDS: dict[tuple[str, str], str] = {
    ("app", "name"): "app_name",
    ("app", "host"): "app_host",
    ("app", "port"): "app_port",
    ("app", "env"): "app_env",
    ("logging", "level"): "log_level",
    ("recommendations", "max_per_hour"): "rate_limit_max_per_hour",
    ("recommendations", "max_per_day"): "rate_limit_max_per_day",
    ("recommendations", "min_interval_seconds"): "rate_limit_min_interval_seconds",
    ("recommendations", "cache_ttl_seconds"): "recommendation_cache_ttl_seconds",
    ("recommendations", "max_prompt_tokens"): "prompt_max_tokens",
    ("recommendations", "max_field_chars"): "prompt_max_field_chars",
    ("recommendations", "temperature"): "generation_temperature",
    ("recommendations", "max_output_tokens"): "generation_max_output_tokens",
    ("recommendations", "provider_timeout_seconds"): "provider_timeout_seconds",
    ("recommendations", "state_backend"): "state_backend",
}

# Sections load_config() always reports, even without a YAML file.
_REPORTED_SECTIONS = ("app", "logging")


def load_config(path: str = "config/config.yaml") -> dict:
    """Load YAML config layered between Settings defaults and the environment.

    A key the environment (or ``.env``) sets explicitly beats the YAML
    value; a key it leaves at its default yields to YAML.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = Settings()
    explicit = settings.model_fields_set

    defaults: dict[str, Any] = {section: {} for section in _REPORTED_SECTIONS}
    env_overrides: dict[str, Any] = {
        "llm": {"available_providers": settings.get_available_llm_providers()},
    }
    for (section, key), field_name in _YAML_FIELDS.items():
        if section not in _REPORTED_SECTIONS:
            continue
        value = getattr(settings, field_name)
        defaults[section][key] = value
        if field_name in explicit:
            env_overrides.setdefault(section, {})[key] = value

    _deep_merge(defaults, yaml_config)
    _deep_merge(defaults, env_overrides)
    return defaults


def settings_from_config(config: dict[str, Any]) -> Settings:
    """Build Settings, letting the YAML sections fill what the env leaves unset.

    A value from YAML is used only when the matching field was not set
    through the environment or ``.env``, so deploy-time overrides always
    win.
    """
    explicit = Settings().model_fields_set
    overrides: dict[str, Any] = {}
    for (section_name, yaml_key), field_name in _YAML_FIELDS.items():
        section = config.get(section_name) or {}
        if yaml_key not in section or field_name in explicit:
            continue
        overrides[field_name] = section[yaml_key]
    return Settings(**overrides)


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
