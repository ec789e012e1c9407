"""Decode forecast details from published file names.

File names look like ``Gudauri_2023-01-24T17:00_LF.en.pdf``: area label,
local forecast time and forecaster separated by ``_``, then an optional
language tag segment and the extension.

The segment right after the details is always taken as the language, so
``Gudauri_2023-01-24T17:00_LF.pdf`` decodes with language ``pdf``.
"""

from collections.abc import Mapping
from datetime import tzinfo

from babel import parse_locale

from avalanche.config.forecast_schema import ForecastSchema
from avalanche.ingest.timezones import parse_local_time, resolve_local_time
from avalanche.models.forecast import ForecastNameComponents

_DETAIL_TOKENS = ("area", "time", "forecaster")


class ForecastNameError(ValueError):
    """Base class for file names that cannot be decoded."""

    def __init__(self, message: str, file_name: str):
        super().__init__(message)
        self.file_name = file_name


class MalformedName(ForecastNameError):
    pass


class UnknownArea(ForecastNameError):
    def __init__(self, message: str, file_name: str, area: str):
        super().__init__(message, file_name)
        self.area = area


class TimeParseError(ForecastNameError):
    pass


class LanguageParseError(ForecastNameError):
    pass


def parse_language_tag(tag: str) -> str:
    """Validate a language tag and return it normalized, e.g. ``en-GB``.

    Raises ValueError for anything that is not a well formed tag.
    """
    parts = parse_locale(tag, sep="-")
    language, territory, script, variant = parts[:4]
    return "-".join(p for p in (language, script, territory, variant) if p)


def decode_name(
    file_name: str, area_time_zones: Mapping[str, tzinfo]
) -> ForecastNameComponents:
    """Decode area, forecaster, forecast time and language from a file name.

    ``area_time_zones`` maps area labels to the time zone the forecast
    time is written in.
    """
    if not file_name:
        raise MalformedName("File name is empty", file_name)

    segments = file_name.split(".")
    details = segments[0]
    if not details:
        raise MalformedName("File name has no details segment", file_name)

    tokens = details.split("_")
    for i, token_name in enumerate(_DETAIL_TOKENS):
        if i >= len(tokens) or not tokens[i]:
            raise MalformedName(f"No {token_name} specified in {file_name!r}", file_name)
    if len(tokens) > len(_DETAIL_TOKENS):
        raise MalformedName(
            f"Unexpected extra details {tokens[3:]} in {file_name!r}", file_name
        )
    area, time_literal, forecaster = tokens

    tz = area_time_zones.get(area)
    if tz is None:
        raise UnknownArea(f"Cannot find area {area!r}", file_name, area)

    try:
        local_time = parse_local_time(time_literal)
    except ValueError as e:
        raise TimeParseError(f"Error parsing time {time_literal!r}", file_name) from e
    time = resolve_local_time(local_time, tz)

    language = None
    if len(segments) > 1:
        try:
            language = parse_language_tag(segments[1])
        except ValueError as e:
            raise LanguageParseError(
                f"Unable to parse language {segments[1]!r}", file_name
            ) from e

    return ForecastNameComponents(
        area=area,
        forecaster=forecaster,
        time=time,
        language=language,
    )


def decode_forecast_name(
    file_name: str, schema: ForecastSchema
) -> ForecastNameComponents:
    return decode_name(file_name, schema.area_time_zones())
