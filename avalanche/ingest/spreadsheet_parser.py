"""Parse forecast spreadsheets (XLSX exports) under a versioned forecast schema."""

import logging
import math
import zipfile
from datetime import datetime, timedelta
from io import BytesIO
from xml.etree import ElementTree

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet
from pydantic import ValidationError

from avalanche.config.forecast_schema import ForecastSchema, ProblemCells
from avalanche.ingest.timezones import parse_local_time, resolve_local_time
from avalanche.models.common import RemoteId
from avalanche.models.forecast import AvalancheProblem, ElevationRange, Forecast

logger = logging.getLogger(__name__)

ASPECTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
MAX_VALID_FOR_HOURS = 24 * 7


class ParseError(Exception):
    """Raised when a document cannot be parsed into a forecast."""

    def __init__(self, message: str, remote_id: RemoteId | None = None):
        super().__init__(message)
        self.remote_id = remote_id


class SpreadsheetParser:
    """Reads a forecast workbook cell by cell as laid out in a ForecastSchema."""

    def parse(self, raw_content: bytes, schema: ForecastSchema) -> Forecast:
        try:
            workbook = openpyxl.load_workbook(BytesIO(raw_content), data_only=True)
        except (
            InvalidFileException,
            zipfile.BadZipFile,
            ElementTree.ParseError,
            KeyError,
            ValueError,
            TypeError,
            OSError,
        ) as e:
            raise ParseError(f"Unable to read workbook: {e}") from e

        if schema.sheet not in workbook.sheetnames:
            raise ParseError(
                f"Sheet {schema.sheet!r} not found (schema {schema.schema_version}), "
                f"have {workbook.sheetnames}"
            )
        sheet = workbook[schema.sheet]
        try:
            forecast = _read_forecast(sheet, schema)
        except ValidationError as e:
            raise ParseError(f"Invalid forecast values: {e}") from e
        logger.debug(
            "Parsed forecast for %s at %s (schema %s)",
            forecast.area, forecast.time.isoformat(), schema.schema_version,
        )
        return forecast


def _read_forecast(sheet: Worksheet, schema: ForecastSchema) -> Forecast:
    cells = schema.cells

    area_label = _required_text(sheet, cells.area, "area")
    area_id = schema.area_id(area_label)
    if area_id is None:
        raise ParseError(f"Unknown area {area_label!r} in cell {cells.area}")
    tz = schema.area_definitions[area_id].zone

    valid_for_hours = _number(sheet, cells.valid_for_hours, "valid_for_hours")
    if valid_for_hours is None:
        raise ParseError(f"Cell {cells.valid_for_hours} (valid_for_hours) is empty")
    if not math.isfinite(valid_for_hours) or not 0 < valid_for_hours <= MAX_VALID_FOR_HOURS:
        raise ParseError(
            f"Cell {cells.valid_for_hours} (valid_for_hours) must be between 0 and "
            f"{MAX_VALID_FOR_HOURS} hours: {valid_for_hours}"
        )

    return Forecast(
        area=area_id,
        forecaster=_required_text(sheet, cells.forecaster, "forecaster"),
        time=resolve_local_time(_local_time(sheet, cells.time), tz),
        valid_for=timedelta(hours=valid_for_hours),
        recent_observations=_translated(sheet, cells.recent_observations),
        forecast_changes=_translated(sheet, cells.forecast_changes),
        weather_forecast=_translated(sheet, cells.weather_forecast),
        description=_translated(sheet, cells.description),
        hazard_ratings={
            kind: rating
            for kind, ref in cells.hazard_ratings.items()
            if (rating := _integer(sheet, ref, f"hazard rating {kind}")) is not None
        },
        avalanche_problems=[
            problem
            for problem_cells in cells.avalanche_problems
            if (problem := _read_problem(sheet, problem_cells)) is not None
        ],
        elevation_bands={
            band: ElevationRange(
                upper=_integer(sheet, band_cells.upper, f"{band} upper"),
                lower=_integer(sheet, band_cells.lower, f"{band} lower"),
            )
            for band, band_cells in cells.elevation_bands.items()
        },
    )


def _read_problem(sheet: Worksheet, cells: ProblemCells) -> AvalancheProblem | None:
    """Read one avalanche problem row. Rows without a kind are unused."""
    kind = _text(sheet, cells.kind)
    if kind is None:
        return None

    aspect_elevation: dict[str, list[str]] = {}
    for band, ref in cells.aspect_elevation.items():
        aspects = _aspects(sheet, ref)
        if aspects:
            aspect_elevation[band] = aspects

    return AvalancheProblem(
        kind=kind,
        aspect_elevation=aspect_elevation,
        confidence=_text(sheet, cells.confidence),
        trend=_text(sheet, cells.trend),
        size=_integer(sheet, cells.size, f"{kind} size"),
        distribution=_text(sheet, cells.distribution),
        time_of_day=_text(sheet, cells.time_of_day),
        sensitivity=_text(sheet, cells.sensitivity),
        description=_translated(sheet, cells.description),
    )


def _value(sheet: Worksheet, ref: str | None):
    if ref is None:
        return None
    value = sheet[ref].value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    return value


def _text(sheet: Worksheet, ref: str | None) -> str | None:
    value = _value(sheet, ref)
    return None if value is None else str(value)


def _required_text(sheet: Worksheet, ref: str, field: str) -> str:
    value = _text(sheet, ref)
    if value is None:
        raise ParseError(f"Cell {ref} ({field}) is empty")
    return value


def _number(sheet: Worksheet, ref: str | None, field: str) -> float | None:
    value = _value(sheet, ref)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Cell {ref} ({field}) is not a number: {value!r}") from e


def _integer(sheet: Worksheet, ref: str | None, field: str) -> int | None:
    number = _number(sheet, ref, field)
    if number is None:
        return None
    if not number.is_integer():
        raise ParseError(f"Cell {ref} ({field}) is not a whole number: {number}")
    return int(number)


def _local_time(sheet: Worksheet, ref: str) -> datetime:
    value = _value(sheet, ref)
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if value is None:
        raise ParseError(f"Cell {ref} (time) is empty")
    try:
        return parse_local_time(str(value))
    except ValueError as e:
        raise ParseError(f"Cell {ref} (time) is not a time: {value!r}") from e


def _translated(sheet: Worksheet, refs: dict[str, str]) -> dict[str, str]:
    texts = {}
    for language, ref in refs.items():
        text = _text(sheet, ref)
        if text is not None:
            texts[language] = text
    return texts


def _aspects(sheet: Worksheet, ref: str) -> list[str]:
    text = _text(sheet, ref)
    if text is None:
        return []
    aspects = [a.strip().upper() for a in text.split(",") if a.strip()]
    unknown = [a for a in aspects if a not in ASPECTS]
    if unknown:
        raise ParseError(f"Cell {ref} has unknown aspects {unknown}")
    return aspects
