"""Configuration system."""

from forecast_core.config.loader import load_config
from forecast_core.config.schema import AppConfig

__all__ = ["AppConfig", "load_config"]
