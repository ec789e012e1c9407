"""Built-in forecast schema for the Gudauri forecast spreadsheet."""

from avalanche.config.forecast_schema import (
    AreaDefinition,
    AreaOptions,
    ElevationBandCells,
    ForecastCells,
    ForecastSchema,
    ProblemCells,
)


def _problem_row(row: int) -> ProblemCells:
    return ProblemCells(
        kind=f"A{row}",
        confidence=f"B{row}",
        trend=f"C{row}",
        size=f"D{row}",
        distribution=f"E{row}",
        time_of_day=f"F{row}",
        sensitivity=f"G{row}",
        aspect_elevation={
            "high-alpine": f"H{row}",
            "alpine": f"I{row}",
            "sub-alpine": f"J{row}",
        },
        description={"en": f"K{row}", "ka": f"L{row}"},
    )


DEFAULT_FORECAST_SCHEMA = ForecastSchema(
    schema_version="0.3.1",
    sheet="Forecast",
    area=AreaOptions(map={"Gudauri": "gudauri"}),
    area_definitions={"gudauri": AreaDefinition(time_zone="Asia/Tbilisi")},
    cells=ForecastCells(
        area="B1",
        forecaster="B2",
        time="B3",
        valid_for_hours="B4",
        hazard_ratings={
            "overall": "B6",
            "high-alpine": "B7",
            "alpine": "B8",
            "sub-alpine": "B9",
        },
        elevation_bands={
            "high-alpine": ElevationBandCells(lower="D7"),
            "alpine": ElevationBandCells(upper="E8", lower="D8"),
            "sub-alpine": ElevationBandCells(upper="E9"),
        },
        description={"en": "B12", "ka": "C12"},
        recent_observations={"en": "B13", "ka": "C13"},
        forecast_changes={"en": "B14", "ka": "C14"},
        weather_forecast={"en": "B15", "ka": "C15"},
        avalanche_problems=[_problem_row(18), _problem_row(19), _problem_row(20)],
    ),
)
