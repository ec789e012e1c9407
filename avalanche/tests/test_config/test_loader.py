"""Tests for config loading, forecast schema loading, and dotted-key lookup."""

import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from avalanche.config.defaults import DEFAULT_FORECAST_SCHEMA
from avalanche.config.loader import get_config_value, load_config, load_forecast_schema
from avalanche.config.schema import DRIVE_BASE_URL, AppConfig


class TestLoadConfig:
    def test_fixtures_config(self, fixtures_dir: Path):
        config = load_config(fixtures_dir / "config_default.yaml")
        assert config.drive.published_folder_id == "1aBcPublishedForecasts"
        assert config.drive.timeout == 20
        assert config.drive.base_url == DRIVE_BASE_URL

    def test_empty_yaml_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = load_config(path)
        assert config.storage.db_path == "data/forecasts.db"
        assert config.forecast_schema_path is None

    def test_unknown_key_rejected(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("drive:\n  folder: abc\n")
        with pytest.raises(ValidationError, match="Extra inputs are not permitted"):
            load_config(path)

    def test_timeout_must_be_positive(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("drive:\n  timeout: 0\n")
        with pytest.raises(ValidationError):
            load_config(path)


class TestLoadForecastSchema:
    def test_builtin_when_unset(self):
        assert load_forecast_schema(AppConfig()) is DEFAULT_FORECAST_SCHEMA

    def test_json_file(self, tmp_path: Path):
        data = DEFAULT_FORECAST_SCHEMA.model_dump(mode="json")
        data["schema_version"] = "0.4.0"
        path = tmp_path / "schema.json"
        with open(path, "w") as f:
            json.dump(data, f)

        schema = load_forecast_schema(AppConfig(forecast_schema_path=str(path)))
        assert schema.schema_version == "0.4.0"
        assert schema.cells == DEFAULT_FORECAST_SCHEMA.cells

    def test_yaml_file(self, tmp_path: Path):
        data = DEFAULT_FORECAST_SCHEMA.model_dump(mode="json")
        data["area"]["map"]["Bakuriani"] = "bakuriani"
        data["area_definitions"]["bakuriani"] = {"time_zone": "Asia/Tbilisi"}
        path = tmp_path / "schema.yaml"
        with open(path, "w") as f:
            yaml.dump(data, f)

        schema = load_forecast_schema(AppConfig(forecast_schema_path=str(path)))
        assert schema.area_id("Bakuriani") == "bakuriani"

    def test_invalid_file(self, tmp_path: Path):
        path = tmp_path / "schema.yaml"
        path.write_text("schema_version: '1'\n")
        with pytest.raises(ValidationError):
            load_forecast_schema(AppConfig(forecast_schema_path=str(path)))


class TestGetConfigValue:
    def test_nested_key(self):
        config = AppConfig()
        assert get_config_value(config, "drive.timeout") == 30.0
        assert get_config_value(config, "storage.db_path") == "data/forecasts.db"

    def test_missing_key(self):
        with pytest.raises(KeyError):
            get_config_value(AppConfig(), "drive.nonexistent")
