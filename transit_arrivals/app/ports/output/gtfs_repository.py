from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime

from transit_arrivals.domain.models import (
    Calendar,
    CalendarDate,
    DirectionName,
    Route,
    ShapePoint,
    Stop,
    StopTime,
    Trip,
)


class IGtfsRepository(ABC):
    """Read contract over the loaded GTFS static schedule.

    Lookups never raise for unknown keys; they return None or an empty list.
    """

    @abstractmethod
    def find_route(self, route_id: str) -> Route | None:
        raise NotImplementedError

    @abstractmethod
    def all_routes(self) -> list[Route]:
        raise NotImplementedError

    @abstractmethod
    def find_routes_by_short_name(self, short_name: str) -> list[Route]:
        raise NotImplementedError

    @abstractmethod
    def find_stop(self, stop_id: str) -> Stop | None:
        raise NotImplementedError

    @abstractmethod
    def all_stops(self) -> list[Stop]:
        raise NotImplementedError

    @abstractmethod
    def find_trip(self, trip_id: str) -> Trip | None:
        raise NotImplementedError

    @abstractmethod
    def find_trips_by_route(self, route_id: str) -> list[Trip]:
        raise NotImplementedError

    @abstractmethod
    def find_trips_by_route_and_direction(
        self, route_id: str, direction_id: int
    ) -> list[Trip]:
        raise NotImplementedError

    @abstractmethod
    def find_stop_times_by_trip(self, trip_id: str) -> list[StopTime]:
        """Stop times of a trip ordered by stop_sequence."""

    @abstractmethod
    def find_stop_times_by_stop(self, stop_id: str) -> list[StopTime]:
        raise NotImplementedError

    @abstractmethod
    def find_stop_time(self, trip_id: str, stop_id: str) -> StopTime | None:
        raise NotImplementedError

    @abstractmethod
    def find_shape_points(self, shape_id: str) -> list[ShapePoint]:
        """Shape points ordered by shape_pt_sequence."""

    @abstractmethod
    def find_direction_name(
        self, route_short_name: str, direction_id: int
    ) -> DirectionName | None:
        raise NotImplementedError

    @abstractmethod
    def find_direction_names_by_route(
        self, route_short_name: str
    ) -> list[DirectionName]:
        raise NotImplementedError

    @abstractmethod
    def find_calendar(self, service_id: str) -> Calendar | None:
        raise NotImplementedError

    @abstractmethod
    def all_calendars(self) -> list[Calendar]:
        raise NotImplementedError

    @abstractmethod
    def find_calendar_dates(self, service_id: str) -> list[CalendarDate]:
        raise NotImplementedError

    @abstractmethod
    def find_calendar_date(self, service_id: str, day: date) -> CalendarDate | None:
        raise NotImplementedError

    @abstractmethod
    def all_calendar_dates(self) -> list[CalendarDate]:
        raise NotImplementedError

    @abstractmethod
    def representative_trip(self, route_id: str, direction_id: int) -> Trip | None:
        """First trip of (route, direction) with stop times, else any trip."""

    @abstractmethod
    def stops_for_direction(self, route_id: str, direction_id: int) -> list[Stop]:
        """Stops of the representative trip in stop_sequence order."""

    @abstractmethod
    def search_routes_by_short_name(self, query: str) -> list[Route]:
        """Case-insensitive substring match on short or long name."""

    @abstractmethod
    def search_stops_by_name(self, query: str) -> list[Stop]:
        """Case-insensitive substring match on stop name, capped at 50."""

    @abstractmethod
    def last_load_time(self) -> datetime | None:
        raise NotImplementedError
