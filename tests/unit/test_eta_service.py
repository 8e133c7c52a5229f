from __future__ import annotations

import pytest
from support import lat_at_arc

from transit_arrivals.adapters.persistence import InMemoryGtfsRepository
from transit_arrivals.app.services.eta_service import EtaService, round_half_up
from transit_arrivals.app.services.shape_distance_service import ShapeDistanceService
from transit_arrivals.domain.algorithms.geo_utils import distance
from transit_arrivals.domain.models import VehiclePosition


@pytest.fixture
def eta_service(gtfs_repository: InMemoryGtfsRepository) -> EtaService:
    return EtaService(
        gtfs_repository=gtfs_repository,
        shape_distance=ShapeDistanceService(gtfs_repository=gtfs_repository),
    )


def _vehicle(lat: float, lon: float = -123.12, trip_id: str | None = "T2"):
    return VehiclePosition(
        vehicle_id="V1",
        lat=lat,
        lon=lon,
        timestamp=1_700_000_000,
        trip_id=trip_id,
        route_id="6635",
        direction_id=0,
    )


def test_round_half_up() -> None:
    assert round_half_up(0.5) == 1
    assert round_half_up(1.5) == 2
    assert round_half_up(2.5) == 3
    assert round_half_up(1.49) == 1


@pytest.mark.parametrize(
    ("distance_m", "expected_s"),
    [(700.0, 86), (0.0, 0), (-5.0, 0), (10.0, 30), (3000.0, 370)],
)
def test_eta_seconds(eta_service: EtaService, distance_m: float, expected_s: int):
    assert eta_service.eta_seconds(distance_m) == expected_s


def test_eta_minutes() -> None:
    assert EtaService.eta_minutes(86) == 1
    assert EtaService.eta_minutes(90) == 2
    assert EtaService.eta_minutes(0) == 0


def test_eta_follows_shape(
    eta_service: EtaService, gtfs_repository: InMemoryGtfsRepository
) -> None:
    stop = gtfs_repository.find_stop("S_C")
    assert stop is not None

    result = eta_service.eta(_vehicle(lat_at_arc(200.0)), stop)

    assert result.used_shape
    assert result.distance_m == pytest.approx(700.0, abs=0.5)
    assert result.eta_seconds == 86
    assert result.eta_minutes == 1
    assert result.progress_pct is not None


def test_eta_falls_back_to_straight_line_off_route(
    eta_service: EtaService, gtfs_repository: InMemoryGtfsRepository
) -> None:
    stop = gtfs_repository.find_stop("S_C")
    assert stop is not None
    vehicle = _vehicle(49.285, lon=-123.130)

    result = eta_service.eta(vehicle, stop)

    assert not result.used_shape
    assert result.progress_pct is None
    assert result.distance_m == pytest.approx(
        distance(vehicle.lat, vehicle.lon, stop.lat, stop.lon)
    )


def test_eta_without_trip_uses_straight_line(
    eta_service: EtaService, gtfs_repository: InMemoryGtfsRepository
) -> None:
    stop = gtfs_repository.find_stop("S_A")
    assert stop is not None

    result = eta_service.eta(_vehicle(49.28, trip_id=None), stop)

    assert not result.used_shape
    assert result.distance_m == pytest.approx(0.0, abs=1e-6)
    assert result.eta_seconds == 0


def test_slower_average_speed_increases_eta(
    gtfs_repository: InMemoryGtfsRepository,
) -> None:
    slow = EtaService(
        gtfs_repository=gtfs_repository,
        shape_distance=ShapeDistanceService(gtfs_repository=gtfs_repository),
        avg_speed_kmh=18.0,
    )

    # 1.2 * 1000 m / 5 m/s
    assert slow.eta_seconds(1000.0) == 240
