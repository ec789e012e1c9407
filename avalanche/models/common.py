"""Common types and helpers shared across models."""

from datetime import UTC, datetime
from typing import TypeAlias

RemoteId: TypeAlias = str


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(iso_str: str) -> datetime:
    """Parse an RFC 3339 timestamp (Drive uses a trailing Z), assuming UTC if naive."""
    dt = datetime.fromisoformat(iso_str)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt
