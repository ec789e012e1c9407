"""Shared test fixtures."""

import sqlite3
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from io import BytesIO
from pathlib import Path

import openpyxl
import pytest

from avalanche.config.defaults import DEFAULT_FORECAST_SCHEMA
from avalanche.config.forecast_schema import ForecastSchema
from avalanche.models.drive import GOOGLE_SHEET_MIME, RemoteFileDescriptor
from avalanche.storage.database import connect, run_migrations

# Cell values for a complete forecast laid out as in the default schema
FORECAST_CELLS: dict[str, object] = {
    "B1": "Gudauri",
    "B2": "LF",
    "B3": "2023-01-24T17:00",
    "B4": 24,
    "B6": 3,
    "B7": 3,
    "B8": 2,
    "B9": 1,
    "D7": 2800,
    "D8": 2200,
    "E8": 2800,
    "E9": 2200,
    "B12": "Considerable avalanche danger above the tree line.",
    "C12": "მნიშვნელოვანი ზვავსაშიშროება.",
    "B13": "Several natural wind slab releases on east aspects.",
    "B14": "Danger increased after new snow and wind.",
    "B15": "Clear skies, strong north-west winds.",
    "A18": "wind-slab",
    "B18": "high",
    "C18": "increasing",
    "D18": 2,
    "E18": "specific",
    "F18": "all-day",
    "G18": "reactive",
    "H18": "N, NE, E",
    "I18": "N,NE",
    "K18": "Fresh wind slabs near ridges.",
    "A19": "persistent-weak-layer",
    "D19": 3,
    "H19": "nw",
}


@pytest.fixture
def forecast_schema() -> ForecastSchema:
    return DEFAULT_FORECAST_SCHEMA


@pytest.fixture
def build_workbook() -> Callable[..., bytes]:
    """Return a factory building an XLSX forecast, with cell overrides.

    An override of None clears the cell.
    """

    def _build(overrides: dict[str, object] | None = None, sheet: str = "Forecast") -> bytes:
        cells = {**FORECAST_CELLS, **(overrides or {})}
        workbook = openpyxl.Workbook()
        ws = workbook.active
        ws.title = sheet
        for ref, value in cells.items():
            ws[ref] = value
        buf = BytesIO()
        workbook.save(buf)
        return buf.getvalue()

    return _build


@pytest.fixture
def db(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(tmp_path / "test.db")
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def sheet_file() -> RemoteFileDescriptor:
    return RemoteFileDescriptor(
        remote_id="sheet-1",
        display_name="Gudauri_2023-01-24T17:00_LF.en",
        content_kind=GOOGLE_SHEET_MIME,
        last_modified=datetime(2023, 1, 24, 13, 5, 12, 345000, tzinfo=UTC),
    )


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
