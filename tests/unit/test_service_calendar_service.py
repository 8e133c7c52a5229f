from __future__ import annotations

from datetime import date, datetime, time

import pytest
from support import VANCOUVER, fixed_clock

from transit_arrivals.adapters.persistence import InMemoryGtfsRepository
from transit_arrivals.app.services.service_calendar_service import (
    ServiceCalendarService,
)
from transit_arrivals.domain.models import StopTime


@pytest.fixture
def calendar(gtfs_repository: InMemoryGtfsRepository) -> ServiceCalendarService:
    return ServiceCalendarService(
        gtfs_repository=gtfs_repository,
        timezone=VANCOUVER,
        clock=fixed_clock(datetime(2025, 7, 2, 12, 0, tzinfo=VANCOUVER)),
    )


@pytest.mark.parametrize(
    ("day", "service_id", "expected"),
    [
        (date(2025, 7, 2), "WK", True),  # Wednesday
        (date(2025, 7, 5), "WK", False),  # Saturday
        (date(2025, 7, 5), "SAT", True),
        (date(2025, 7, 4), "WK", False),  # Friday, removed by exception
        (date(2025, 7, 6), "WK", True),  # Sunday, added by exception
        (date(2026, 1, 5), "WK", False),  # after end_date
        (date(2025, 7, 2), "UNKNOWN", False),
    ],
)
def test_is_service_active(
    calendar: ServiceCalendarService, day: date, service_id: str, expected: bool
) -> None:
    assert calendar.is_service_active(service_id, day) is expected


def test_today_uses_agency_time_zone(gtfs_repository: InMemoryGtfsRepository) -> None:
    # 02:00 UTC on Thursday is still Wednesday evening in Vancouver.
    moment = datetime.fromisoformat("2025-07-03T02:00:00+00:00")
    calendar = ServiceCalendarService(
        gtfs_repository=gtfs_repository,
        timezone=VANCOUVER,
        clock=fixed_clock(moment),
    )

    assert calendar.today() == date(2025, 7, 2)
    assert calendar.is_service_active_today("WK")
    assert not calendar.is_service_active_today("SAT")


def test_filter_active_trip_ids_drops_unknown_and_inactive(
    calendar: ServiceCalendarService,
) -> None:
    kept = calendar.filter_active_trip_ids(["T2", "T4", "T3", "missing"])

    assert kept == ["T2", "T3"]
    assert calendar.filter_active_trip_ids(["T2", "T4"], date(2025, 7, 5)) == ["T4"]


def test_filter_active_stop_times(calendar: ServiceCalendarService) -> None:
    rows = [
        StopTime("T2", "S_A", time(8, 0), 1),
        StopTime("T4", "S_A", time(8, 10), 1),
    ]

    assert [st.trip_id for st in calendar.filter_active_stop_times(rows)] == ["T2"]


def test_service_stats(calendar: ServiceCalendarService) -> None:
    wednesday = calendar.service_stats()
    holiday = calendar.service_stats(date(2025, 7, 4))

    assert wednesday.date == date(2025, 7, 2)
    assert (wednesday.total_services, wednesday.active_services) == (2, 1)
    assert wednesday.inactive_services == 1
    assert wednesday.exceptions_on_date == 0

    assert holiday.active_services == 0
    assert holiday.exceptions_on_date == 1
