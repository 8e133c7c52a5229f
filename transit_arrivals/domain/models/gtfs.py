from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import IntEnum

from .geo import GeoPoint

BUS_ROUTE_TYPE = 3


def gtfs_time_to_seconds(raw: str) -> int:
    """Seconds since service-day midnight; GTFS hours may exceed 24."""

    parts = raw.strip().split(":")
    if len(parts) != 3:
        raise ValueError(f"Invalid GTFS time: {raw!r}")
    hh, mm, ss = (int(p) for p in parts)
    if hh < 0 or not (0 <= mm < 60) or not (0 <= ss < 60):
        raise ValueError(f"Invalid GTFS time: {raw!r}")
    return hh * 3600 + mm * 60 + ss


def parse_gtfs_time(raw: str) -> time:
    """Parse HH:MM:SS into a time of day, wrapping hours modulo 24."""

    total = gtfs_time_to_seconds(raw)
    hh, rem = divmod(total, 3600)
    mm, ss = divmod(rem, 60)
    return time(hour=hh % 24, minute=mm, second=ss)


def parse_gtfs_date(raw: str) -> date:
    value = raw.strip()
    if len(value) != 8 or not value.isdigit():
        raise ValueError(f"Invalid GTFS date: {raw!r}")
    return datetime.strptime(value, "%Y%m%d").date()


def parse_gtfs_boolean(raw: str) -> bool:
    value = raw.strip()
    if value == "1":
        return True
    if value == "0":
        return False
    raise ValueError(f"Invalid GTFS boolean: {raw!r}")


@dataclass(frozen=True, slots=True)
class Route:
    route_id: str
    route_short_name: str
    route_long_name: str | None = None
    route_type: int = BUS_ROUTE_TYPE

    @property
    def is_bus(self) -> bool:
        return self.route_type == BUS_ROUTE_TYPE


@dataclass(frozen=True, slots=True)
class Stop:
    stop_id: str
    stop_name: str
    lat: float
    lon: float

    def __post_init__(self) -> None:
        # Global range check; agency bounds are applied by the loader.
        GeoPoint(lat=self.lat, lon=self.lon)

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)


@dataclass(frozen=True, slots=True)
class Trip:
    trip_id: str
    route_id: str
    service_id: str
    direction_id: int
    shape_id: str | None = None
    trip_headsign: str | None = None

    def __post_init__(self) -> None:
        if self.direction_id not in (0, 1):
            raise ValueError(f"direction_id must be 0 or 1, got {self.direction_id}")


@dataclass(frozen=True, slots=True)
class StopTime:
    trip_id: str
    stop_id: str
    arrival_time: time
    stop_sequence: int
    departure_time: time | None = None

    def __post_init__(self) -> None:
        if self.stop_sequence < 0:
            raise ValueError(f"stop_sequence must be >= 0, got {self.stop_sequence}")
        if self.departure_time is None:
            object.__setattr__(self, "departure_time", self.arrival_time)
        elif self.departure_time < self.arrival_time:
            raise ValueError(
                f"departure_time {self.departure_time} precedes arrival_time "
                f"{self.arrival_time}"
            )


@dataclass(frozen=True, slots=True)
class ShapePoint:
    shape_id: str
    shape_pt_sequence: int
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if self.shape_pt_sequence < 0:
            raise ValueError(
                f"shape_pt_sequence must be >= 0, got {self.shape_pt_sequence}"
            )
        GeoPoint(lat=self.lat, lon=self.lon)


@dataclass(frozen=True, slots=True)
class DirectionName:
    """Agency-provided friendly name for a (route_short_name, direction_id) pair."""

    route_short_name: str
    direction_id: int
    direction_name: str
    direction_do: str | None = None

    def __post_init__(self) -> None:
        if self.direction_id not in (0, 1):
            raise ValueError(f"direction_id must be 0 or 1, got {self.direction_id}")


@dataclass(frozen=True, slots=True)
class Calendar:
    service_id: str
    start_date: date
    end_date: date
    monday: bool
    tuesday: bool
    wednesday: bool
    thursday: bool
    friday: bool
    saturday: bool
    sunday: bool

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )

    def runs_on_weekday(self, day: date) -> bool:
        mask = (
            self.monday,
            self.tuesday,
            self.wednesday,
            self.thursday,
            self.friday,
            self.saturday,
            self.sunday,
        )
        return mask[day.weekday()]

    def is_active_on(self, day: date) -> bool:
        if day < self.start_date or day > self.end_date:
            return False
        return self.runs_on_weekday(day)


class ExceptionType(IntEnum):
    ADDED = 1
    REMOVED = 2


@dataclass(frozen=True, slots=True)
class CalendarDate:
    service_id: str
    date: date
    exception_type: ExceptionType

    @property
    def is_added(self) -> bool:
        return self.exception_type is ExceptionType.ADDED
