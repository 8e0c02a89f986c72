"""Unit tests for YAML config loading and Settings construction."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.config.loader import load_config, settings_from_config

_YAML = """\
app:
  name: shelfwise
recommendations:
  max_per_hour: 3
  max_per_day: 8
  cache_ttl_seconds: 600
  state_backend: sqlite
logging:
  level: DEBUG
"""


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from an empty directory (no .env) with no relevant env vars set."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "RATE_LIMIT_MAX_PER_HOUR",
        "RATE_LIMIT_MAX_PER_DAY",
        "RECOMMENDATION_CACHE_TTL_SECONDS",
        "STATE_BACKEND",
        "LOG_LEVEL",
        "APP_ENV",
        "APP_NAME",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestLoadConfig:
    def test_missing_file_yields_env_sections_only(self, isolated_env: Path) -> None:
        config = load_config(str(isolated_env / "nope.yaml"))
        assert "recommendations" not in config
        assert config["logging"]["level"] == "INFO"
        assert config["app"]["port"] == 8000

    def test_yaml_sections_merged_with_env(self, isolated_env: Path) -> None:
        path = isolated_env / "config.yaml"
        path.write_text(_YAML)

        config = load_config(str(path))

        assert config["app"]["name"] == "shelfwise"
        assert config["app"]["host"] == "0.0.0.0"
        assert config["recommendations"]["max_per_hour"] == 3
        # YAML beats Settings defaults when the env leaves a key unset.
        assert config["logging"]["level"] == "DEBUG"

    def test_env_var_beats_yaml_section(
        self, isolated_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = isolated_env / "config.yaml"
        path.write_text(_YAML)
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        assert load_config(str(path))["logging"]["level"] == "WARNING"

    def test_available_providers_reported(
        self, isolated_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        config = load_config(str(isolated_env / "nope.yaml"))
        assert config["llm"]["available_providers"][0] == "anthropic"


class TestSettingsFromConfig:
    def test_defaults_without_section(self, isolated_env: Path) -> None:
        settings = settings_from_config({})
        assert settings.rate_limit_max_per_hour == 2
        assert settings.rate_limit_max_per_day == 5
        assert settings.rate_limit_min_interval_seconds == 300
        assert settings.recommendation_cache_ttl_seconds == 3600
        assert settings.prompt_max_tokens == 1000
        assert settings.state_backend == "memory"

    def test_yaml_values_fill_settings(self, isolated_env: Path) -> None:
        path = isolated_env / "config.yaml"
        path.write_text(_YAML)

        settings = settings_from_config(load_config(str(path)))

        assert settings.rate_limit_max_per_hour == 3
        assert settings.rate_limit_max_per_day == 8
        assert settings.recommendation_cache_ttl_seconds == 600
        assert settings.state_backend == "sqlite"

    def test_app_and_logging_sections_reach_settings(self, isolated_env: Path) -> None:
        config = {"app": {"name": "shelfwise-eu", "env": "production"}, "logging": {"level": "DEBUG"}}

        settings = settings_from_config(config)

        assert settings.app_name == "shelfwise-eu"
        assert settings.app_env == "production"
        assert settings.log_level == "DEBUG"

    def test_env_var_beats_yaml(
        self, isolated_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RATE_LIMIT_MAX_PER_DAY", "12")
        settings = settings_from_config({"recommendations": {"max_per_day": 8, "max_per_hour": 3}})
        assert settings.rate_limit_max_per_day == 12
        assert settings.rate_limit_max_per_hour == 3

    def test_shipped_config_matches_defaults(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        shipped = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
        monkeypatch.delenv("RATE_LIMIT_MAX_PER_HOUR", raising=False)
        monkeypatch.delenv("RATE_LIMIT_MAX_PER_DAY", raising=False)

        settings = settings_from_config(load_config(str(shipped)))

        assert settings.rate_limit_max_per_hour == 2
        assert settings.rate_limit_max_per_day == 5
        assert settings.provider_timeout_seconds == 25.0
