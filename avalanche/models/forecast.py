"""Avalanche forecast models: parsed forecasts, decoded file names, cache records."""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, Field

from avalanche.models.common import RemoteId, utc_now
from avalanche.models.drive import RemoteFileDescriptor

HazardRating = Annotated[int, Field(ge=1, le=5)]


class ElevationRange(BaseModel):
    upper: int | None = None
    lower: int | None = None


class AvalancheProblem(BaseModel):
    kind: str
    aspect_elevation: dict[str, list[str]] = {}
    confidence: str | None = None
    trend: str | None = None
    size: int | None = None
    distribution: str | None = None
    time_of_day: str | None = None
    sensitivity: str | None = None
    description: dict[str, str] = {}


class Forecast(BaseModel):
    """Structured forecast parsed from a forecast spreadsheet.

    Free-text sections are keyed by language tag.
    """

    area: str
    forecaster: str
    time: datetime
    valid_for: timedelta
    recent_observations: dict[str, str] = {}
    forecast_changes: dict[str, str] = {}
    weather_forecast: dict[str, str] = {}
    description: dict[str, str] = {}
    hazard_ratings: dict[str, HazardRating] = {}
    avalanche_problems: list[AvalancheProblem] = []
    elevation_bands: dict[str, ElevationRange] = {}

    @property
    def valid_until(self) -> datetime:
        return self.time + self.valid_for

    def is_current(self, now: datetime | None = None) -> bool:
        if now is None:
            now = utc_now()
        return now <= self.valid_until


@dataclass(frozen=True)
class ForecastNameComponents:
    area: str
    forecaster: str
    time: datetime
    language: str | None = None

    def to_dict(self) -> dict:
        return {
            "area": self.area,
            "forecaster": self.forecaster,
            "time": self.time.isoformat(),
            "language": self.language,
        }


class RequestedData(StrEnum):
    FORECAST = "forecast"  # parsed forecast, spreadsheets only
    FILE = "file"  # raw file for download


@dataclass(frozen=True)
class ForecastData:
    kind: RequestedData
    forecast: Forecast | None = None
    file_bytes: bytes | None = None


@dataclass(frozen=True)
class CachedForecastRecord:
    """Cached copy of a Drive file and, optionally, its parsed forecast.

    ``last_modified`` and ``raw_content`` only change together (see
    ``fetched``). ``parsed_forecast`` and ``schema_version`` are both set
    or both unset (see ``with_parse``).
    """

    remote_id: RemoteId
    last_modified: datetime
    raw_content: bytes
    parsed_forecast: Forecast | None = None
    schema_version: str | None = None

    def __post_init__(self) -> None:
        if (self.parsed_forecast is None) != (self.schema_version is None):
            raise ValueError(
                f"Record {self.remote_id} must have both a parsed forecast and a "
                "schema version, or neither"
            )

    @classmethod
    def fetched(
        cls,
        file: RemoteFileDescriptor,
        raw_content: bytes,
        parsed_forecast: Forecast | None = None,
        schema_version: str | None = None,
    ) -> "CachedForecastRecord":
        return cls(
            remote_id=file.remote_id,
            last_modified=file.last_modified,
            raw_content=raw_content,
            parsed_forecast=parsed_forecast,
            schema_version=schema_version,
        )

    def with_parse(
        self, parsed_forecast: Forecast, schema_version: str
    ) -> "CachedForecastRecord":
        return replace(
            self, parsed_forecast=parsed_forecast, schema_version=schema_version
        )

    def is_fresh_for(self, file: RemoteFileDescriptor) -> bool:
        # Exact equality, not ordering: an older modified time is also stale
        return self.last_modified == file.last_modified

    def has_parse_for(self, schema_version: str) -> bool:
        return self.parsed_forecast is not None and self.schema_version == schema_version
