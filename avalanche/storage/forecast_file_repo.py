"""Repository for cached forecast files and their parsed forecasts.

Every write is a single statement, so a record is never left with a
parsed forecast but no schema version (or the reverse), or with new
content but an old modified time.
"""

import logging
import sqlite3
from datetime import datetime

from pydantic import ValidationError

from avalanche.models.common import RemoteId
from avalanche.models.forecast import CachedForecastRecord, Forecast

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the cache database cannot be read or written."""

    def __init__(self, message: str, remote_id: RemoteId | None = None):
        super().__init__(message)
        self.remote_id = remote_id


def get_forecast_file(
    conn: sqlite3.Connection, remote_id: RemoteId
) -> CachedForecastRecord | None:
    """Get the cached record for a Drive file, or None on a cache miss."""
    try:
        row = conn.execute(
            "SELECT remote_id, last_modified, raw_content, parsed_forecast, schema_version "
            "FROM forecast_files WHERE remote_id = ?",
            (remote_id,),
        ).fetchone()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to read cached file {remote_id}: {e}", remote_id) from e
    if row is None:
        return None
    return _row_to_record(row)


def upsert_forecast_file(conn: sqlite3.Connection, record: CachedForecastRecord) -> None:
    """Insert or fully replace a cached record, raw and parsed fields together."""
    parsed_json = (
        record.parsed_forecast.model_dump_json()
        if record.parsed_forecast is not None
        else None
    )
    try:
        conn.execute(
            "INSERT INTO forecast_files "
            "(remote_id, last_modified, raw_content, parsed_forecast, schema_version) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(remote_id) DO UPDATE SET "
            "last_modified = excluded.last_modified, "
            "raw_content = excluded.raw_content, "
            "parsed_forecast = excluded.parsed_forecast, "
            "schema_version = excluded.schema_version, "
            "updated_at = CURRENT_TIMESTAMP",
            (
                record.remote_id,
                record.last_modified.isoformat(),
                record.raw_content,
                parsed_json,
                record.schema_version,
            ),
        )
        conn.commit()
    except sqlite3.Error as e:
        _rollback(conn)
        raise StorageError(
            f"Failed to store cached file {record.remote_id}: {e}", record.remote_id
        ) from e


def update_parsed_forecast(conn: sqlite3.Connection, record: CachedForecastRecord) -> None:
    """Store only the parse of an existing record, keeping its raw fields.

    The record comes from ``CachedForecastRecord.with_parse``, so the
    forecast and schema version are always written as a pair.
    """
    if record.parsed_forecast is None:
        raise StorageError(f"Record {record.remote_id} has no parsed forecast", record.remote_id)
    try:
        cursor = conn.execute(
            "UPDATE forecast_files SET parsed_forecast = ?, schema_version = ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE remote_id = ?",
            (
                record.parsed_forecast.model_dump_json(),
                record.schema_version,
                record.remote_id,
            ),
        )
        conn.commit()
    except sqlite3.Error as e:
        _rollback(conn)
        raise StorageError(
            f"Failed to store parsed forecast for {record.remote_id}: {e}", record.remote_id
        ) from e
    if cursor.rowcount == 0:
        raise StorageError(f"No cached file {record.remote_id} to update", record.remote_id)


def list_forecast_files(conn: sqlite3.Connection) -> list[dict]:
    """Summaries of all cached records, without their content."""
    try:
        rows = conn.execute(
            "SELECT remote_id, last_modified, length(raw_content) AS size_bytes, "
            "schema_version, updated_at FROM forecast_files ORDER BY updated_at DESC"
        ).fetchall()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to list cached files: {e}") from e
    return [dict(r) for r in rows]


def _row_to_record(row: sqlite3.Row) -> CachedForecastRecord:
    parsed_forecast = None
    schema_version = None
    if row["parsed_forecast"] is not None:
        try:
            parsed_forecast = Forecast.model_validate_json(row["parsed_forecast"])
            schema_version = row["schema_version"]
        except ValidationError:
            # Treated as absent so the caller reparses from raw_content
            logger.warning(
                "Cached forecast for %s no longer matches the forecast model",
                row["remote_id"],
            )
    return CachedForecastRecord(
        remote_id=row["remote_id"],
        last_modified=datetime.fromisoformat(row["last_modified"]),
        raw_content=bytes(row["raw_content"]),
        parsed_forecast=parsed_forecast,
        schema_version=schema_version,
    )


def _rollback(conn: sqlite3.Connection) -> None:
    try:
        conn.rollback()
    except sqlite3.ProgrammingError:
        # Closed connection, there is no transaction left to roll back
        logger.debug("Skipping rollback on a closed connection")
