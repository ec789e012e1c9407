"""Forecast cache: serves Drive files and parsed forecasts from SQLite when fresh."""

import logging
import sqlite3
from collections.abc import Sequence

from avalanche.config.forecast_schema import ForecastSchema
from avalanche.ingest.drive_client import DriveClient, FetchError, find_file_by_id
from avalanche.ingest.spreadsheet_parser import ParseError, SpreadsheetParser
from avalanche.models.common import RemoteId
from avalanche.models.drive import XLSX_MIME, RemoteFileDescriptor
from avalanche.models.forecast import (
    CachedForecastRecord,
    Forecast,
    ForecastData,
    RequestedData,
)
from avalanche.storage import forecast_file_repo

logger = logging.getLogger(__name__)


class UnsupportedContentKind(Exception):
    """Raised when a file's MIME type cannot provide the requested data."""

    def __init__(self, message: str, remote_id: RemoteId, content_kind: str):
        super().__init__(message)
        self.remote_id = remote_id
        self.content_kind = content_kind


class ForecastCache:
    """Keeps raw files and parsed forecasts in sync with Drive.

    The raw file is refetched only when Drive reports a different modified
    time. The parsed forecast is redone when the raw file changes or when
    it was produced under a different schema version.

    WARNING: no access checks are made here. Callers must make sure the
    requested file belongs to the published folder.
    """

    def __init__(
        self,
        drive: DriveClient,
        conn: sqlite3.Connection,
        parser: SpreadsheetParser | None = None,
    ):
        self.drive = drive
        self.conn = conn
        self.parser = parser or SpreadsheetParser()

    def get_data(
        self,
        remote_id: RemoteId,
        requested: RequestedData,
        schema: ForecastSchema,
        listing: Sequence[RemoteFileDescriptor] | None = None,
    ) -> ForecastData:
        """Get data for a Drive file by id.

        The file's current modified time comes from ``listing`` when given,
        otherwise from the Drive metadata endpoint.
        """
        if listing is not None:
            file = find_file_by_id(remote_id, listing)
            if file is None:
                raise FetchError(f"File {remote_id} is not in the listing", remote_id=remote_id)
        else:
            file = self.drive.get_file_metadata(remote_id)
        return self.get_file_data(file, requested, schema)

    def get_file_data(
        self,
        file: RemoteFileDescriptor,
        requested: RequestedData,
        schema: ForecastSchema,
    ) -> ForecastData:
        """Get data for a Drive file as described by a current listing."""
        _check_content_kind(file, requested)

        record = forecast_file_repo.get_forecast_file(self.conn, file.remote_id)
        if record is not None:
            logger.debug(
                "%s: cached last modified %s, server last modified %s",
                file.remote_id, record.last_modified, file.last_modified,
            )
            if record.is_fresh_for(file):
                logger.debug("%s: using cached forecast file", file.remote_id)
            else:
                logger.debug("%s: found cached forecast file, but it's outdated", file.remote_id)
                record = None

        if record is None:
            record = self._fetch(file, requested, schema)

        if requested == RequestedData.FILE:
            return ForecastData(kind=RequestedData.FILE, file_bytes=record.raw_content)
        return ForecastData(
            kind=RequestedData.FORECAST,
            forecast=self._current_forecast(file, record, schema),
        )

    def _fetch(
        self,
        file: RemoteFileDescriptor,
        requested: RequestedData,
        schema: ForecastSchema,
    ) -> CachedForecastRecord:
        """Fetch (and parse, for forecasts) a new or updated file and store it."""
        logger.debug("%s: fetching updated/new forecast file", file.remote_id)
        if requested == RequestedData.FORECAST:
            raw_content = self.drive.export_file(file.remote_id, XLSX_MIME)
            forecast = self._parse(file, raw_content, schema)
            record = CachedForecastRecord.fetched(
                file, raw_content, forecast, schema.schema_version
            )
        else:
            raw_content = self.drive.get_file(file.remote_id)
            record = CachedForecastRecord.fetched(file, raw_content)

        logger.debug("%s: updating cached forecast file", file.remote_id)
        forecast_file_repo.upsert_forecast_file(self.conn, record)
        return record

    def _current_forecast(
        self,
        file: RemoteFileDescriptor,
        record: CachedForecastRecord,
        schema: ForecastSchema,
    ) -> Forecast:
        """Reuse the cached parse if it matches the schema, otherwise reparse."""
        if record.has_parse_for(schema.schema_version):
            logger.debug("%s: re-using parsed forecast", file.remote_id)
            assert record.parsed_forecast is not None
            return record.parsed_forecast

        if record.parsed_forecast is not None:
            logger.warning(
                "%s: cached forecast schema version %s doesn't match current %s",
                file.remote_id, record.schema_version, schema.schema_version,
            )
        logger.debug("%s: re-parsing forecast", file.remote_id)
        forecast = self._parse(file, record.raw_content, schema)

        logger.debug("%s: updating cached parsed forecast and schema version", file.remote_id)
        forecast_file_repo.update_parsed_forecast(
            self.conn, record.with_parse(forecast, schema.schema_version)
        )
        return forecast

    def _parse(
        self, file: RemoteFileDescriptor, raw_content: bytes, schema: ForecastSchema
    ) -> Forecast:
        try:
            return self.parser.parse(raw_content, schema)
        except ParseError as e:
            raise ParseError(
                f"Error parsing forecast spreadsheet {file.display_name!r} "
                f"({file.remote_id}): {e}",
                remote_id=file.remote_id,
            ) from e


def _check_content_kind(file: RemoteFileDescriptor, requested: RequestedData) -> None:
    if requested == RequestedData.FORECAST and not file.is_spreadsheet:
        raise UnsupportedContentKind(
            f"Unsupported mime type {file.content_kind} for a parsed forecast: "
            f"{file.display_name!r} ({file.remote_id})",
            file.remote_id,
            file.content_kind,
        )
    if requested == RequestedData.FILE and file.is_native_google_document:
        raise UnsupportedContentKind(
            f"Native Google document {file.display_name!r} ({file.remote_id}) "
            f"of type {file.content_kind} cannot be downloaded",
            file.remote_id,
            file.content_kind,
        )
