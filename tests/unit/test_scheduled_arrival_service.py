from __future__ import annotations

from datetime import time

import pytest

from transit_arrivals.adapters.persistence import InMemoryGtfsRepository
from transit_arrivals.app.services.scheduled_arrival_service import (
    MAX_UPCOMING,
    ScheduledArrivalService,
    classify_delay,
    compute_delay,
    upcoming_buses,
)
from transit_arrivals.domain.algorithms.time_of_day import add_seconds
from transit_arrivals.domain.models import DelayStatus, StopTime, VehiclePosition


@pytest.mark.parametrize(
    ("minutes", "status"),
    [
        (0, DelayStatus.ON_TIME),
        (1, DelayStatus.ON_TIME),
        (-1, DelayStatus.ON_TIME),
        (2, DelayStatus.DELAYED),
        (-2, DelayStatus.EARLY),
    ],
)
def test_classify_delay(minutes: int, status: DelayStatus) -> None:
    assert classify_delay(minutes) is status


def test_compute_delay_truncates_toward_zero() -> None:
    # Predicted 08:01:26 against 08:03:00 is 94 s early.
    info = compute_delay(time(8, 3), 86, time(8, 0))

    assert info.predicted == time(8, 1, 26)
    assert info.delay_minutes == -1
    assert info.status is DelayStatus.ON_TIME


def test_compute_delay_across_midnight() -> None:
    info = compute_delay(time(23, 58), 300, time(23, 59))

    assert info.predicted == time(0, 4)
    assert info.delay_minutes == 6
    assert info.status is DelayStatus.DELAYED


def test_compute_delay_early_before_midnight() -> None:
    info = compute_delay(time(0, 10), 60, time(23, 55))

    assert info.delay_minutes == -14
    assert info.status is DelayStatus.EARLY


def test_upcoming_buses_window_wraps_past_midnight() -> None:
    rows = [
        StopTime("T1", "S1", time(0, 15), 1),
        StopTime("T2", "S1", time(23, 45), 1),
        StopTime("T3", "S1", time(0, 31), 1),
        StopTime("T4", "S1", time(22, 0), 1),
    ]

    buses = upcoming_buses(rows, time(23, 30))

    assert [(b.scheduled_arrival, b.eta_minutes) for b in buses] == [
        (time(23, 45), 15),
        (time(0, 15), 45),
    ]
    assert not any(b.is_real_time for b in buses)


def test_upcoming_buses_window_is_inclusive() -> None:
    rows = [
        StopTime("T1", "S1", time(9, 0), 1),
        StopTime("T2", "S1", time(8, 0), 1),
        StopTime("T3", "S1", time(9, 0, 1), 1),
    ]

    buses = upcoming_buses(rows, time(8, 0))

    assert [b.eta_minutes for b in buses] == [0, 60]


def test_upcoming_buses_are_capped() -> None:
    now = time(8, 0)
    rows = [
        StopTime(f"T{i}", "S1", add_seconds(now, 120 * i), 1) for i in range(25)
    ]

    buses = upcoming_buses(rows, now)

    assert len(buses) == MAX_UPCOMING
    assert buses[0].eta_minutes == 0
    assert buses[-1].eta_minutes == 38


def test_adherence_for_vehicle_on_scheduled_trip(
    gtfs_repository: InMemoryGtfsRepository,
) -> None:
    service = ScheduledArrivalService(gtfs_repository=gtfs_repository)
    vehicle = VehiclePosition("V1", 49.28, -123.12, 0, trip_id="T2")

    adherence = service.adherence(vehicle, "S_B", 300, time(8, 0))

    assert adherence.scheduled is not None
    assert adherence.scheduled.arrival_time == time(8, 3)
    assert adherence.scheduled.stop_sequence == 2
    assert adherence.delay is not None
    assert adherence.delay.delay_minutes == 2
    assert adherence.delay.status is DelayStatus.DELAYED


def test_adherence_is_empty_without_schedule(
    gtfs_repository: InMemoryGtfsRepository,
) -> None:
    service = ScheduledArrivalService(gtfs_repository=gtfs_repository)
    no_trip = VehiclePosition("V1", 49.28, -123.12, 0)
    wrong_stop = VehiclePosition("V2", 49.28, -123.12, 0, trip_id="T2")

    assert service.adherence(no_trip, "S_B", 60, time(8, 0)).delay is None
    assert service.adherence(wrong_stop, "S_X", 60, time(8, 0)).scheduled is None


def test_scheduled_arrivals_for_stop_in_window(
    gtfs_repository: InMemoryGtfsRepository,
) -> None:
    service = ScheduledArrivalService(gtfs_repository=gtfs_repository)

    arrivals = service.scheduled_arrivals_for_stop("S_A", time(8, 0), time(8, 30))

    # Calendar is not applied here; the Saturday trip is listed too.
    assert [(a.trip_id, a.arrival_time) for a in arrivals] == [
        ("T2", time(8, 0)),
        ("T4", time(8, 10)),
    ]
