from __future__ import annotations

from datetime import date, datetime, time

import pytest
from support import VANCOUVER, lat_at_arc

from transit_arrivals.adapters.persistence import GtfsDataset, InMemoryGtfsRepository
from transit_arrivals.domain.models import (
    Calendar,
    CalendarDate,
    DirectionName,
    ExceptionType,
    Route,
    ShapePoint,
    Stop,
    StopTime,
    Trip,
)


@pytest.fixture
def gtfs_dataset() -> GtfsDataset:
    """Route 049 running north along a 1.1km straight shape.

    Direction 0 has a stop-less trip listed first (T1) and a timed trip (T2);
    direction 1 runs back without a shape.
    """

    return GtfsDataset(
        routes=(
            Route("6635", "049", "UBC - Metrotown Station"),
            Route("6636", "2", "Macdonald - Downtown"),
            Route("6637", "002", "Downtown Express"),
            Route("6638", "R4", "41st Ave"),
        ),
        stops=(
            Stop("S_A", "Main St @ 1st Ave", 49.28, -123.12),
            Stop("S_B", "Main St @ Broadway", lat_at_arc(500.0), -123.12),
            Stop("S_C", "UBC Exchange Bay 7", lat_at_arc(900.0), -123.12),
            Stop("S_X", "Granville St @ 41st Ave", 49.234, -123.14),
        ),
        trips=(
            Trip("T1", "6635", "WK", 0, shape_id="SH1", trip_headsign="UBC"),
            Trip("T2", "6635", "WK", 0, shape_id="SH1", trip_headsign="UBC"),
            Trip("T3", "6635", "WK", 1, trip_headsign="Metrotown Station"),
            Trip("T4", "6635", "SAT", 0, shape_id="SH1", trip_headsign="UBC"),
            Trip("T9", "6636", "WK", 0, trip_headsign="Downtown"),
        ),
        stop_times=(
            StopTime("T2", "S_A", time(8, 0), 1),
            StopTime("T2", "S_B", time(8, 3), 2),
            StopTime("T2", "S_C", time(8, 6), 3),
            StopTime("T3", "S_C", time(9, 0), 1),
            StopTime("T3", "S_A", time(9, 10), 2),
            StopTime("T4", "S_A", time(8, 10), 1),
            StopTime("T4", "S_C", time(8, 16), 2),
            StopTime("T9", "S_X", time(8, 5), 1),
        ),
        shape_points=(
            ShapePoint("SH1", 2, 49.29, -123.12),
            ShapePoint("SH1", 1, 49.28, -123.12),
        ),
        direction_names=(DirectionName("049", 0, "To UBC"),),
        calendars=(
            Calendar(
                "WK",
                date(2025, 1, 1),
                date(2025, 12, 31),
                True,
                True,
                True,
                True,
                True,
                False,
                False,
            ),
            Calendar(
                "SAT",
                date(2025, 1, 1),
                date(2025, 12, 31),
                False,
                False,
                False,
                False,
                False,
                True,
                False,
            ),
        ),
        calendar_dates=(
            CalendarDate("WK", date(2025, 7, 4), ExceptionType.REMOVED),
            CalendarDate("WK", date(2025, 7, 6), ExceptionType.ADDED),
        ),
    )


@pytest.fixture
def gtfs_repository(gtfs_dataset: GtfsDataset) -> InMemoryGtfsRepository:
    repo = InMemoryGtfsRepository()
    repo.load_dataset(gtfs_dataset)
    return repo


@pytest.fixture
def weekday_morning() -> datetime:
    # Wednesday.
    return datetime(2025, 7, 2, 7, 55, 0, tzinfo=VANCOUVER)
