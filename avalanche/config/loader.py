"""YAML config loader, forecast schema loading, and dotted-key lookup."""

import json
from pathlib import Path
from typing import Any

import yaml

from avalanche.config.defaults import DEFAULT_FORECAST_SCHEMA
from avalanche.config.forecast_schema import ForecastSchema
from avalanche.config.schema import AppConfig


def load_config(path: str | Path) -> AppConfig:
    """Load and validate config from a YAML file."""
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return AppConfig(**raw)


def load_forecast_schema(config: AppConfig) -> ForecastSchema:
    """Load the configured forecast schema, or the built-in one.

    Files ending in .json are read as JSON, anything else as YAML.
    """
    if config.forecast_schema_path is None:
        return DEFAULT_FORECAST_SCHEMA

    path = Path(config.forecast_schema_path)
    with open(path) as f:
        if path.suffix == ".json":
            raw = json.load(f)
        else:
            raw = yaml.safe_load(f) or {}
    return ForecastSchema.model_validate(raw)


def get_config_value(config: AppConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'drive.timeout'."""
    parts = dotted_key.split(".")
    obj: Any = config
    for part in parts:
        if isinstance(obj, list):
            obj = obj[int(part)]
        elif hasattr(obj, part):
            obj = getattr(obj, part)
        elif isinstance(obj, dict):
            obj = obj[part]
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj
