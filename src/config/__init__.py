"""Configuration module — exports Settings, the YAML loader and the fallback catalog."""

from src.config.catalog import FALLBACK_CATALOG
from src.config.loader import load_config, settings_from_config
from src.config.settings import Settings

__all__ = ["FALLBACK_CATALOG", "Settings", "load_config", "settings_from_config"]
