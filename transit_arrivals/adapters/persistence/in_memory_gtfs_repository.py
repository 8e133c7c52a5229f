from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Iterable

from transit_arrivals.app.ports.output import IGtfsRepository
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

logger = logging.getLogger(__name__)

MAX_STOP_SEARCH_CANDIDATES = 50


@dataclass(frozen=True, slots=True)
class GtfsSnapshot:
    """Immutable bundle of primary maps and derived indices.

    Every load builds a new snapshot and publishes it with a single reference
    assignment, so readers always see a consistent set of maps.
    """

    routes_by_id: dict[str, Route] = field(default_factory=dict)
    routes_by_short_name: dict[str, tuple[Route, ...]] = field(default_factory=dict)
    stops_by_id: dict[str, Stop] = field(default_factory=dict)
    trips_by_id: dict[str, Trip] = field(default_factory=dict)
    trips_by_route_id: dict[str, tuple[Trip, ...]] = field(default_factory=dict)
    trips_by_route_and_direction: dict[tuple[str, int], tuple[Trip, ...]] = field(
        default_factory=dict
    )
    stop_times_by_trip_id: dict[str, tuple[StopTime, ...]] = field(
        default_factory=dict
    )
    stop_times_by_stop_id: dict[str, tuple[StopTime, ...]] = field(
        default_factory=dict
    )
    shape_points_by_shape_id: dict[str, tuple[ShapePoint, ...]] = field(
        default_factory=dict
    )
    direction_names_by_key: dict[tuple[str, int], DirectionName] = field(
        default_factory=dict
    )
    direction_names_by_route: dict[str, tuple[DirectionName, ...]] = field(
        default_factory=dict
    )
    calendars_by_service_id: dict[str, Calendar] = field(default_factory=dict)
    calendar_dates_by_service_id: dict[str, tuple[CalendarDate, ...]] = field(
        default_factory=dict
    )


@dataclass(frozen=True, slots=True)
class GtfsDataset:
    """Everything read from one GTFS archive."""

    routes: tuple[Route, ...] = ()
    stops: tuple[Stop, ...] = ()
    trips: tuple[Trip, ...] = ()
    stop_times: tuple[StopTime, ...] = ()
    shape_points: tuple[ShapePoint, ...] = ()
    direction_names: tuple[DirectionName, ...] = ()
    calendars: tuple[Calendar, ...] = ()
    calendar_dates: tuple[CalendarDate, ...] = ()


@dataclass(frozen=True, slots=True)
class RepositoryStats:
    routes: int
    stops: int
    trips: int
    stop_times: int
    shape_points: int
    direction_names: int
    calendars: int
    calendar_dates: int
    last_load_time: datetime | None


def _group(items: Iterable, key) -> dict:
    grouped: dict = {}
    for item in items:
        grouped.setdefault(key(item), []).append(item)
    return {k: tuple(v) for k, v in grouped.items()}


def _index_routes(routes: Iterable[Route]) -> dict:
    routes = list(routes)
    return {
        "routes_by_id": {r.route_id: r for r in routes},
        "routes_by_short_name": _group(routes, lambda r: r.route_short_name),
    }


def _index_stops(stops: Iterable[Stop]) -> dict:
    return {"stops_by_id": {s.stop_id: s for s in stops}}


def _index_trips(trips: Iterable[Trip]) -> dict:
    trips = list(trips)
    return {
        "trips_by_id": {t.trip_id: t for t in trips},
        "trips_by_route_id": _group(trips, lambda t: t.route_id),
        "trips_by_route_and_direction": _group(
            trips, lambda t: (t.route_id, t.direction_id)
        ),
    }


def _index_stop_times(stop_times: Iterable[StopTime]) -> dict:
    by_trip: dict[str, list[StopTime]] = {}
    by_stop: dict[str, list[StopTime]] = {}
    seen: set[tuple[str, int]] = set()
    seen_stops: set[tuple[str, str]] = set()
    duplicates = 0

    for st in stop_times:
        seq_key = (st.trip_id, st.stop_sequence)
        stop_key = (st.trip_id, st.stop_id)
        if seq_key in seen or stop_key in seen_stops:
            duplicates += 1
            continue
        seen.add(seq_key)
        seen_stops.add(stop_key)
        by_trip.setdefault(st.trip_id, []).append(st)
        by_stop.setdefault(st.stop_id, []).append(st)

    if duplicates:
        logger.warning("Dropped %d duplicate stop times", duplicates)

    return {
        "stop_times_by_trip_id": {
            trip_id: tuple(sorted(rows, key=lambda st: st.stop_sequence))
            for trip_id, rows in by_trip.items()
        },
        "stop_times_by_stop_id": {k: tuple(v) for k, v in by_stop.items()},
    }


def _index_shape_points(points: Iterable[ShapePoint]) -> dict:
    grouped = _group(points, lambda p: p.shape_id)
    return {
        "shape_points_by_shape_id": {
            shape_id: tuple(sorted(pts, key=lambda p: p.shape_pt_sequence))
            for shape_id, pts in grouped.items()
        }
    }


def _index_direction_names(names: Iterable[DirectionName]) -> dict:
    names = list(names)
    by_key = {(n.route_short_name, n.direction_id): n for n in names}
    return {
        "direction_names_by_key": by_key,
        "direction_names_by_route": _group(
            by_key.values(), lambda n: n.route_short_name
        ),
    }


def _index_calendars(calendars: Iterable[Calendar]) -> dict:
    return {"calendars_by_service_id": {c.service_id: c for c in calendars}}


def _index_calendar_dates(calendar_dates: Iterable[CalendarDate]) -> dict:
    return {
        "calendar_dates_by_service_id": _group(calendar_dates, lambda cd: cd.service_id)
    }


def _representative_trip(
    snap: GtfsSnapshot, route_id: str, direction_id: int
) -> Trip | None:
    trips = snap.trips_by_route_and_direction.get((route_id, direction_id), ())
    for trip in trips:
        if snap.stop_times_by_trip_id.get(trip.trip_id):
            return trip
    return trips[0] if trips else None


@dataclass(slots=True)
class InMemoryGtfsRepository(IGtfsRepository):
    """Thread-safe, read-mostly GTFS index.

    Loads are expected at boot; each load replaces the maps it owns wholesale.
    Lookups read the current snapshot reference once and never block.
    """

    _snapshot: GtfsSnapshot = field(default_factory=GtfsSnapshot, init=False)
    _write_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _last_load_time: datetime | None = field(default=None, init=False)

    # Loading

    def _publish(self, what: str, count: int, maps: dict) -> None:
        with self._write_lock:
            self._snapshot = replace(self._snapshot, **maps)
            self._last_load_time = datetime.now(timezone.utc)
        logger.info("Loaded %d %s", count, what)

    def load_routes(self, routes: Iterable[Route]) -> None:
        routes = list(routes)
        self._publish("routes", len(routes), _index_routes(routes))

    def load_stops(self, stops: Iterable[Stop]) -> None:
        stops = list(stops)
        self._publish("stops", len(stops), _index_stops(stops))

    def load_trips(self, trips: Iterable[Trip]) -> None:
        trips = list(trips)
        self._publish("trips", len(trips), _index_trips(trips))

    def load_stop_times(self, stop_times: Iterable[StopTime]) -> None:
        stop_times = list(stop_times)
        self._publish("stop times", len(stop_times), _index_stop_times(stop_times))

    def load_shape_points(self, shape_points: Iterable[ShapePoint]) -> None:
        shape_points = list(shape_points)
        self._publish(
            "shape points", len(shape_points), _index_shape_points(shape_points)
        )

    def load_direction_names(self, direction_names: Iterable[DirectionName]) -> None:
        direction_names = list(direction_names)
        self._publish(
            "direction names",
            len(direction_names),
            _index_direction_names(direction_names),
        )

    def load_calendars(self, calendars: Iterable[Calendar]) -> None:
        calendars = list(calendars)
        self._publish("calendars", len(calendars), _index_calendars(calendars))

    def load_calendar_dates(self, calendar_dates: Iterable[CalendarDate]) -> None:
        calendar_dates = list(calendar_dates)
        self._publish(
            "calendar dates", len(calendar_dates), _index_calendar_dates(calendar_dates)
        )

    def load_dataset(self, dataset: GtfsDataset) -> None:
        """Replace every map at once from a full archive."""

        maps: dict = {}
        maps.update(_index_routes(dataset.routes))
        maps.update(_index_stops(dataset.stops))
        maps.update(_index_trips(dataset.trips))
        maps.update(_index_stop_times(dataset.stop_times))
        maps.update(_index_shape_points(dataset.shape_points))
        maps.update(_index_direction_names(dataset.direction_names))
        maps.update(_index_calendars(dataset.calendars))
        maps.update(_index_calendar_dates(dataset.calendar_dates))

        with self._write_lock:
            self._snapshot = GtfsSnapshot(**maps)
            self._last_load_time = datetime.now(timezone.utc)

        logger.info(
            "Loaded GTFS dataset: %d routes, %d stops, %d trips, %d stop times, "
            "%d shape points, %d direction names, %d calendars, %d calendar dates",
            len(dataset.routes),
            len(dataset.stops),
            len(dataset.trips),
            len(dataset.stop_times),
            len(dataset.shape_points),
            len(dataset.direction_names),
            len(dataset.calendars),
            len(dataset.calendar_dates),
        )

    def snapshot(self) -> GtfsSnapshot:
        return self._snapshot

    def last_load_time(self) -> datetime | None:
        return self._last_load_time

    def stats(self) -> RepositoryStats:
        snap = self._snapshot
        return RepositoryStats(
            routes=len(snap.routes_by_id),
            stops=len(snap.stops_by_id),
            trips=len(snap.trips_by_id),
            stop_times=sum(len(v) for v in snap.stop_times_by_trip_id.values()),
            shape_points=sum(len(v) for v in snap.shape_points_by_shape_id.values()),
            direction_names=len(snap.direction_names_by_key),
            calendars=len(snap.calendars_by_service_id),
            calendar_dates=sum(
                len(v) for v in snap.calendar_dates_by_service_id.values()
            ),
            last_load_time=self._last_load_time,
        )

    # Routes

    def find_route(self, route_id: str) -> Route | None:
        return self._snapshot.routes_by_id.get(route_id)

    def all_routes(self) -> list[Route]:
        return list(self._snapshot.routes_by_id.values())

    def find_routes_by_short_name(self, short_name: str) -> list[Route]:
        return list(self._snapshot.routes_by_short_name.get(short_name, ()))

    def search_routes_by_short_name(self, query: str) -> list[Route]:
        needle = query.strip().upper()
        if not needle:
            return []
        return [
            r
            for r in self._snapshot.routes_by_id.values()
            if needle in r.route_short_name.upper()
            or needle in (r.route_long_name or "").upper()
        ]

    # Stops

    def find_stop(self, stop_id: str) -> Stop | None:
        return self._snapshot.stops_by_id.get(stop_id)

    def all_stops(self) -> list[Stop]:
        return list(self._snapshot.stops_by_id.values())

    def search_stops_by_name(self, query: str) -> list[Stop]:
        needle = query.strip().lower()
        if not needle:
            return []
        out: list[Stop] = []
        for stop in self._snapshot.stops_by_id.values():
            if needle in stop.stop_name.lower():
                out.append(stop)
                if len(out) >= MAX_STOP_SEARCH_CANDIDATES:
                    break
        return out

    # Trips

    def find_trip(self, trip_id: str) -> Trip | None:
        return self._snapshot.trips_by_id.get(trip_id)

    def find_trips_by_route(self, route_id: str) -> list[Trip]:
        return list(self._snapshot.trips_by_route_id.get(route_id, ()))

    def find_trips_by_route_and_direction(
        self, route_id: str, direction_id: int
    ) -> list[Trip]:
        key = (route_id, direction_id)
        return list(self._snapshot.trips_by_route_and_direction.get(key, ()))

    def representative_trip(self, route_id: str, direction_id: int) -> Trip | None:
        return _representative_trip(self._snapshot, route_id, direction_id)

    def stops_for_direction(self, route_id: str, direction_id: int) -> list[Stop]:
        snap = self._snapshot
        trip = _representative_trip(snap, route_id, direction_id)
        if trip is None:
            return []

        stops: list[Stop] = []
        for st in snap.stop_times_by_trip_id.get(trip.trip_id, ()):
            stop = snap.stops_by_id.get(st.stop_id)
            if stop is not None:
                stops.append(stop)
        return stops

    # Stop times

    def find_stop_times_by_trip(self, trip_id: str) -> list[StopTime]:
        return list(self._snapshot.stop_times_by_trip_id.get(trip_id, ()))

    def find_stop_times_by_stop(self, stop_id: str) -> list[StopTime]:
        return list(self._snapshot.stop_times_by_stop_id.get(stop_id, ()))

    def find_stop_time(self, trip_id: str, stop_id: str) -> StopTime | None:
        for st in self._snapshot.stop_times_by_trip_id.get(trip_id, ()):
            if st.stop_id == stop_id:
                return st
        return None

    # Shapes

    def find_shape_points(self, shape_id: str) -> list[ShapePoint]:
        return list(self._snapshot.shape_points_by_shape_id.get(shape_id, ()))

    # Direction names

    def find_direction_name(
        self, route_short_name: str, direction_id: int
    ) -> DirectionName | None:
        return self._snapshot.direction_names_by_key.get(
            (route_short_name, direction_id)
        )

    def find_direction_names_by_route(
        self, route_short_name: str
    ) -> list[DirectionName]:
        return list(self._snapshot.direction_names_by_route.get(route_short_name, ()))

    # Calendars

    def find_calendar(self, service_id: str) -> Calendar | None:
        return self._snapshot.calendars_by_service_id.get(service_id)

    def all_calendars(self) -> list[Calendar]:
        return list(self._snapshot.calendars_by_service_id.values())

    def find_calendar_dates(self, service_id: str) -> list[CalendarDate]:
        return list(self._snapshot.calendar_dates_by_service_id.get(service_id, ()))

    def find_calendar_date(self, service_id: str, day: date) -> CalendarDate | None:
        for cd in self._snapshot.calendar_dates_by_service_id.get(service_id, ()):
            if cd.date == day:
                return cd
        return None

    def all_calendar_dates(self) -> list[CalendarDate]:
        return [
            cd
            for dates in self._snapshot.calendar_dates_by_service_id.values()
            for cd in dates
        ]
