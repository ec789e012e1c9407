"""Tests for forecast spreadsheet parsing."""

import zipfile
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from io import BytesIO

import pytest

from avalanche.config.forecast_schema import ForecastSchema
from avalanche.ingest.spreadsheet_parser import ParseError, SpreadsheetParser


@pytest.fixture
def parser() -> SpreadsheetParser:
    return SpreadsheetParser()


class TestParse:
    def test_header_fields(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        forecast = parser.parse(build_workbook(), forecast_schema)
        assert forecast.area == "gudauri"
        assert forecast.forecaster == "LF"
        assert forecast.time.isoformat() == "2023-01-24T17:00:00+04:00"
        assert forecast.valid_for == timedelta(hours=24)

    def test_hazard_ratings_keep_schema_order(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        forecast = parser.parse(build_workbook(), forecast_schema)
        assert list(forecast.hazard_ratings.items()) == [
            ("overall", 3),
            ("high-alpine", 3),
            ("alpine", 2),
            ("sub-alpine", 1),
        ]

    def test_translated_sections(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        forecast = parser.parse(build_workbook(), forecast_schema)
        assert set(forecast.description) == {"en", "ka"}
        # Georgian columns are empty for these sections
        assert set(forecast.recent_observations) == {"en"}
        assert forecast.weather_forecast["en"].startswith("Clear skies")

    def test_elevation_bands(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        forecast = parser.parse(build_workbook(), forecast_schema)
        assert forecast.elevation_bands["high-alpine"].lower == 2800
        assert forecast.elevation_bands["high-alpine"].upper is None
        assert forecast.elevation_bands["alpine"].upper == 2800
        assert forecast.elevation_bands["sub-alpine"].lower is None

    def test_avalanche_problems(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        forecast = parser.parse(build_workbook(), forecast_schema)
        # Third problem row is empty
        assert [p.kind for p in forecast.avalanche_problems] == [
            "wind-slab",
            "persistent-weak-layer",
        ]
        wind_slab = forecast.avalanche_problems[0]
        assert wind_slab.aspect_elevation == {
            "high-alpine": ["N", "NE", "E"],
            "alpine": ["N", "NE"],
        }
        assert wind_slab.size == 2
        assert wind_slab.sensitivity == "reactive"
        assert wind_slab.description == {"en": "Fresh wind slabs near ridges."}

        pwl = forecast.avalanche_problems[1]
        assert pwl.aspect_elevation == {"high-alpine": ["NW"]}
        assert pwl.confidence is None

    def test_deterministic(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        raw = build_workbook()
        assert parser.parse(raw, forecast_schema) == parser.parse(raw, forecast_schema)

    def test_datetime_cell(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        raw = build_workbook({"B3": datetime(2023, 1, 24, 17, 0)})
        forecast = parser.parse(raw, forecast_schema)
        assert forecast.time == datetime(2023, 1, 24, 13, 0, tzinfo=UTC)


class TestParseErrors:
    def test_not_a_workbook(self, parser: SpreadsheetParser, forecast_schema: ForecastSchema):
        with pytest.raises(ParseError):
            parser.parse(b"%PDF-1.7 not a spreadsheet", forecast_schema)

    def test_missing_sheet(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        with pytest.raises(ParseError, match="Sheet"):
            parser.parse(build_workbook(sheet="Sheet1"), forecast_schema)

    def test_unknown_area(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        with pytest.raises(ParseError, match="Unknown area"):
            parser.parse(build_workbook({"B1": "Bakuriani"}), forecast_schema)

    def test_missing_forecaster(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        with pytest.raises(ParseError, match="forecaster"):
            parser.parse(build_workbook({"B2": None}), forecast_schema)

    def test_bad_time(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        with pytest.raises(ParseError, match="time"):
            parser.parse(build_workbook({"B3": "tomorrow"}), forecast_schema)

    def test_rating_out_of_range(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        with pytest.raises(ParseError):
            parser.parse(build_workbook({"B6": 7}), forecast_schema)

    def test_rating_not_a_number(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        with pytest.raises(ParseError, match="not a number"):
            parser.parse(build_workbook({"B7": "high"}), forecast_schema)

    def test_unknown_aspect(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        with pytest.raises(ParseError, match="aspects"):
            parser.parse(build_workbook({"H18": "N, up"}), forecast_schema)

    @pytest.mark.parametrize("hours", [1e12, "inf", "nan", 0, -6, 24 * 365])
    def test_valid_for_out_of_range(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema, hours,
    ):
        with pytest.raises(ParseError, match="valid_for_hours"):
            parser.parse(build_workbook({"B4": hours}), forecast_schema)

    def test_corrupt_sheet_xml(
        self, parser: SpreadsheetParser, build_workbook: Callable[..., bytes],
        forecast_schema: ForecastSchema,
    ):
        raw = _replace_member(build_workbook(), "xl/worksheets/sheet1.xml", b"<worksheet><broken")
        with pytest.raises(ParseError, match="Unable to read workbook"):
            parser.parse(raw, forecast_schema)


def _replace_member(raw: bytes, name: str, content: bytes) -> bytes:
    """Rewrite one file inside an XLSX archive."""
    out = BytesIO()
    with zipfile.ZipFile(BytesIO(raw)) as src, zipfile.ZipFile(out, "w") as dst:
        for item in src.infolist():
            data = content if item.filename == name else src.read(item.filename)
            dst.writestr(item, data)
    return out.getvalue()
