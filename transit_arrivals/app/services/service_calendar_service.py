from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterable
from zoneinfo import ZoneInfo

from transit_arrivals.app.ports.output import IGtfsRepository
from transit_arrivals.domain.models import ExceptionType, StopTime

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ServiceStats:
    date: date
    total_services: int
    active_services: int
    inactive_services: int
    exceptions_on_date: int


@dataclass(slots=True)
class ServiceCalendarService:
    """Decides whether a GTFS service runs on a given date.

    Date exceptions (calendar_dates.txt) take precedence over the weekly
    pattern in calendar.txt. "Today" is taken in the agency time zone.
    """

    gtfs_repository: IGtfsRepository
    timezone: ZoneInfo
    clock: Callable[[ZoneInfo], datetime] = field(
        default=lambda tz: datetime.now(tz), repr=False
    )

    def today(self) -> date:
        return self.clock(self.timezone).date()

    def is_service_active(self, service_id: str, day: date) -> bool:
        exception = self.gtfs_repository.find_calendar_date(service_id, day)
        if exception is not None:
            return exception.exception_type is ExceptionType.ADDED

        calendar = self.gtfs_repository.find_calendar(service_id)
        if calendar is None:
            return False
        return calendar.is_active_on(day)

    def is_service_active_today(self, service_id: str) -> bool:
        return self.is_service_active(service_id, self.today())

    def filter_active_trip_ids(
        self, trip_ids: Iterable[str], day: date | None = None
    ) -> list[str]:
        day = day or self.today()
        active_by_service: dict[str, bool] = {}
        out: list[str] = []
        for trip_id in trip_ids:
            trip = self.gtfs_repository.find_trip(trip_id)
            if trip is None:
                continue
            active = active_by_service.get(trip.service_id)
            if active is None:
                active = self.is_service_active(trip.service_id, day)
                active_by_service[trip.service_id] = active
            if active:
                out.append(trip_id)
        return out

    def filter_active_stop_times(
        self, stop_times: Iterable[StopTime], day: date | None = None
    ) -> list[StopTime]:
        stop_times = list(stop_times)
        active = set(
            self.filter_active_trip_ids({st.trip_id for st in stop_times}, day)
        )
        filtered = [st for st in stop_times if st.trip_id in active]
        logger.debug(
            "Kept %d of %d stop times with active service",
            len(filtered),
            len(stop_times),
        )
        return filtered

    def service_stats(self, day: date | None = None) -> ServiceStats:
        day = day or self.today()
        calendars = self.gtfs_repository.all_calendars()
        active = sum(1 for c in calendars if self.is_service_active(c.service_id, day))
        exceptions = sum(
            1 for cd in self.gtfs_repository.all_calendar_dates() if cd.date == day
        )
        return ServiceStats(
            date=day,
            total_services=len(calendars),
            active_services=active,
            inactive_services=len(calendars) - active,
            exceptions_on_date=exceptions,
        )
