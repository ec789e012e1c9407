"""Resolve local wall-clock times in an area's time zone to absolute instants."""

from datetime import datetime, timedelta, timezone, tzinfo

LOCAL_TIME_FORMAT = "%Y-%m-%dT%H:%M"


def parse_local_time(literal: str) -> datetime:
    """Parse a naive ``YYYY-MM-DDTHH:MM`` literal. Raises ValueError."""
    return datetime.strptime(literal, LOCAL_TIME_FORMAT)


def primary_offset(tz: tzinfo, at: datetime) -> timedelta:
    """The zone's standard offset around ``at``, ignoring daylight saving."""
    local = at.replace(tzinfo=tz)
    offset = local.utcoffset() or timedelta(0)
    dst = local.dst() or timedelta(0)
    return offset - dst


def resolve_local_time(local_time: datetime | str, tz: tzinfo) -> datetime:
    """Resolve a naive local time to an aware datetime with the correct offset.

    The offset in effect depends on the instant, which is what we are
    trying to find. Guess the instant using the standard offset, look up
    the offset the zone actually uses at that guess, then reattach the
    same wall-clock fields to that offset.

    Times inside a skipped or repeated hour are not disambiguated.
    """
    if isinstance(local_time, str):
        local_time = parse_local_time(local_time)
    naive = local_time.replace(tzinfo=None)

    guess = naive.replace(tzinfo=timezone(primary_offset(tz, naive)))
    real_offset = guess.astimezone(tz).utcoffset() or timedelta(0)
    return naive.replace(tzinfo=timezone(real_offset))
