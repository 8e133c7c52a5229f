from __future__ import annotations

import pytest
from support import lat_at_arc

from transit_arrivals.adapters.persistence import InMemoryGtfsRepository
from transit_arrivals.app.services.shape_distance_service import ShapeDistanceService
from transit_arrivals.domain.algorithms.shape_distance import (
    build_cumulative_distances_m,
    project_onto_polyline,
    shape_route_distance,
)
from transit_arrivals.domain.models import GeoPoint, Trip, VehiclePosition

LINE = [
    GeoPoint(lat=49.28, lon=-123.12),
    GeoPoint(lat=lat_at_arc(500.0), lon=-123.12),
    GeoPoint(lat=lat_at_arc(1000.0), lon=-123.12),
]


def _vehicle(lat: float, lon: float = -123.12, trip_id: str = "T2") -> VehiclePosition:
    return VehiclePosition(
        vehicle_id="V1",
        lat=lat,
        lon=lon,
        timestamp=1_700_000_000,
        trip_id=trip_id,
        route_id="6635",
        direction_id=0,
    )


def test_cumulative_distances() -> None:
    cumulative = build_cumulative_distances_m(LINE)

    assert cumulative[0] == 0.0
    assert cumulative[1] == pytest.approx(500.0, abs=0.01)
    assert cumulative[2] == pytest.approx(1000.0, abs=0.01)
    assert build_cumulative_distances_m(LINE[:1]) == (0.0,)


def test_project_onto_polyline_second_segment() -> None:
    proj = project_onto_polyline(GeoPoint(lat=lat_at_arc(750.0), lon=-123.12), LINE)

    assert proj.segment_index == 1
    assert proj.arc_m == pytest.approx(750.0, abs=0.01)
    assert proj.offset_m == pytest.approx(0.0, abs=0.01)


def test_project_onto_polyline_needs_two_points() -> None:
    with pytest.raises(ValueError):
        project_onto_polyline(LINE[0], LINE[:1])


def test_route_distance_along_shape() -> None:
    result = shape_route_distance(
        LINE,
        GeoPoint(lat=lat_at_arc(200.0), lon=-123.12),
        GeoPoint(lat=lat_at_arc(900.0), lon=-123.12),
    )

    assert result is not None
    assert result.route_distance_m == pytest.approx(700.0, abs=0.5)
    assert not result.passed
    assert result.progress_pct == pytest.approx(20.0, abs=0.1)


def test_vehicle_past_the_stop_is_flagged() -> None:
    result = shape_route_distance(
        LINE,
        GeoPoint(lat=lat_at_arc(950.0), lon=-123.12),
        GeoPoint(lat=lat_at_arc(900.0), lon=-123.12),
    )

    assert result is not None
    assert result.passed
    assert result.route_distance_m == 0.0


def test_off_route_vehicle_returns_none() -> None:
    # About 725 m west of the line.
    far_west = GeoPoint(lat=49.285, lon=-123.130)

    assert shape_route_distance(LINE, far_west, LINE[2]) is None
    assert shape_route_distance(LINE[:1], LINE[0], LINE[0]) is None


def test_service_uses_trip_shape(gtfs_repository: InMemoryGtfsRepository) -> None:
    service = ShapeDistanceService(gtfs_repository=gtfs_repository)
    trip = gtfs_repository.find_trip("T2")
    stop = gtfs_repository.find_stop("S_C")
    assert trip is not None and stop is not None

    result = service.calculate(_vehicle(lat_at_arc(200.0)), trip, stop)

    assert result is not None
    assert result.route_distance_m == pytest.approx(700.0, abs=0.5)


def test_service_without_shape_returns_none(
    gtfs_repository: InMemoryGtfsRepository,
) -> None:
    service = ShapeDistanceService(gtfs_repository=gtfs_repository)
    stop = gtfs_repository.find_stop("S_C")
    assert stop is not None
    shapeless = Trip("T3", "6635", "WK", 1)
    unknown_shape = Trip("TX", "6635", "WK", 0, shape_id="NOPE")

    assert service.calculate(_vehicle(49.28), shapeless, stop) is None
    assert service.calculate(_vehicle(49.28), unknown_shape, stop) is None
