"""Versioned forecast spreadsheet schema: area table and cell layout."""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, field_validator, model_validator


class AreaOptions(BaseModel):
    model_config = {"extra": "forbid"}

    # Area label as written in file names and sheets -> area id
    map: dict[str, str]


class AreaDefinition(BaseModel):
    model_config = {"extra": "forbid"}

    time_zone: str

    @field_validator("time_zone")
    @classmethod
    def _known_time_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ValueError, ZoneInfoNotFoundError) as e:
            raise ValueError(f"Unknown time zone {value!r}") from e
        return value

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)


class ElevationBandCells(BaseModel):
    model_config = {"extra": "forbid"}

    upper: str | None = None
    lower: str | None = None


class ProblemCells(BaseModel):
    """Cell references for one avalanche problem row."""

    model_config = {"extra": "forbid"}

    kind: str
    confidence: str | None = None
    trend: str | None = None
    size: str | None = None
    distribution: str | None = None
    time_of_day: str | None = None
    sensitivity: str | None = None
    # Elevation band id -> cell holding comma separated aspects
    aspect_elevation: dict[str, str] = {}
    description: dict[str, str] = {}


class ForecastCells(BaseModel):
    model_config = {"extra": "forbid"}

    area: str
    forecaster: str
    time: str
    valid_for_hours: str
    # Language tag -> cell
    recent_observations: dict[str, str] = {}
    forecast_changes: dict[str, str] = {}
    weather_forecast: dict[str, str] = {}
    description: dict[str, str] = {}
    # Hazard rating kind -> cell
    hazard_ratings: dict[str, str] = {}
    avalanche_problems: list[ProblemCells] = []
    elevation_bands: dict[str, ElevationBandCells] = {}


class ForecastSchema(BaseModel):
    """Everything needed to read one version of the forecast spreadsheet."""

    model_config = {"extra": "forbid"}

    schema_version: str
    sheet: str = "Forecast"
    area: AreaOptions
    area_definitions: dict[str, AreaDefinition]
    cells: ForecastCells

    @model_validator(mode="after")
    def _areas_defined(self) -> "ForecastSchema":
        missing = sorted(
            area_id
            for area_id in self.area.map.values()
            if area_id not in self.area_definitions
        )
        if missing:
            raise ValueError(f"Missing area definitions for: {', '.join(missing)}")
        return self

    def area_id(self, label: str) -> str | None:
        return self.area.map.get(label)

    def time_zone_for_area(self, label: str) -> ZoneInfo | None:
        area_id = self.area_id(label)
        if area_id is None:
            return None
        return self.area_definitions[area_id].zone

    def area_time_zones(self) -> dict[str, ZoneInfo]:
        """Area label -> time zone table used when decoding file names."""
        return {
            label: self.area_definitions[area_id].zone
            for label, area_id in self.area.map.items()
        }
