"""Pydantic v2 configuration schema with strict validation."""

from pydantic import BaseModel, Field

DRIVE_BASE_URL = "https://www.googleapis.com/drive/v3"


class DriveConfig(BaseModel):
    model_config = {"extra": "forbid"}

    # Falls back to GOOGLE_DRIVE_API_KEY when empty
    api_key: str = ""
    published_folder_id: str = ""
    base_url: str = DRIVE_BASE_URL
    timeout: float = Field(default=30.0, gt=0.0)


class StorageConfig(BaseModel):
    model_config = {"extra": "forbid"}

    db_path: str = "data/forecasts.db"


class AppConfig(BaseModel):
    model_config = {"extra": "forbid"}

    drive: DriveConfig = DriveConfig()
    storage: StorageConfig = StorageConfig()
    # JSON or YAML ForecastSchema; the built-in schema is used when unset
    forecast_schema_path: str | None = None
