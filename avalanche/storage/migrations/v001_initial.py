"""Initial schema: cached forecast files."""

import sqlite3

DDL = [
    # One row per Drive file. The raw file and its parsed forecast can go
    # stale independently; a parse is never stored without its schema version.
    """
    CREATE TABLE IF NOT EXISTS forecast_files (
        remote_id TEXT PRIMARY KEY,
        last_modified TEXT NOT NULL,
        raw_content BLOB NOT NULL,
        parsed_forecast TEXT,
        schema_version TEXT,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        CHECK ((parsed_forecast IS NULL) = (schema_version IS NULL))
    )
    """,
]


def up(conn: sqlite3.Connection) -> None:
    for statement in DDL:
        conn.execute(statement)
