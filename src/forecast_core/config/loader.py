"""Config loader: reads YAML, applies FORECAST_* env var overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from forecast_core.config.schema import AppConfig

# env var -> (section, field); values are coerced by the pydantic schema
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "FORECAST_DATABASE_URL": ("database", "url"),
    "FORECAST_LOG_LEVEL": ("logging", "level"),
    "FORECAST_LOG_FORMAT": ("logging", "format"),
    "FORECAST_OUTCOME_COUNT": ("market", "outcome_count"),
    "FORECAST_TRADING_DURATION_S": ("market", "trading_duration_s"),
    "FORECAST_ANSWER_TIMEOUT_S": ("oracle", "answer_timeout_s"),
    "FORECAST_JOURNAL_ENABLED": ("journal", "enabled"),
}


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from a YAML file, then apply env var overrides.

    If *path* is None or the file doesn't exist, returns defaults.

    Environment variable overrides:
        FORECAST_DATABASE_URL        -> database.url
        FORECAST_LOG_LEVEL           -> logging.level
        FORECAST_LOG_FORMAT          -> logging.format
        FORECAST_OUTCOME_COUNT       -> market.outcome_count
        FORECAST_TRADING_DURATION_S  -> market.trading_duration_s
        FORECAST_ANSWER_TIMEOUT_S    -> oracle.answer_timeout_s
        FORECAST_JOURNAL_ENABLED     -> journal.enabled ("true"/"false", "1"/"0")

    Setting FORECAST_DATABASE_URL alone does not turn the journal on.
    """
    data: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}

    for env_var, (section, field) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data.setdefault(section, {})[field] = value

    return AppConfig.model_validate(data)
