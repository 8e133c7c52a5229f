from __future__ import annotations

import csv
import io
import logging
import os
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Mapping, TypeVar

from transit_arrivals.adapters.persistence.in_memory_gtfs_repository import (
    GtfsDataset,
)
from transit_arrivals.domain.exceptions.transit import LoadError
from transit_arrivals.domain.models import (
    Calendar,
    CalendarDate,
    DirectionName,
    ExceptionType,
    GeoBounds,
    Route,
    ShapePoint,
    Stop,
    StopTime,
    Trip,
)
from transit_arrivals.domain.models.gtfs import (
    BUS_ROUTE_TYPE,
    gtfs_time_to_seconds,
    parse_gtfs_boolean,
    parse_gtfs_date,
    parse_gtfs_time,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Row = Mapping[str, str | None]

ROUTES_FILE = "routes.txt"
STOPS_FILE = "stops.txt"
TRIPS_FILE = "trips.txt"
STOP_TIMES_FILE = "stop_times.txt"
SHAPES_FILE = "shapes.txt"
DIRECTION_NAMES_FILE = "direction_names_exceptions.txt"
CALENDAR_FILE = "calendar.txt"
CALENDAR_DATES_FILE = "calendar_dates.txt"

_BOM = "\ufeff"


def _clean_header(name: str) -> str:
    return name.strip().lstrip(_BOM).strip()


def _req(row: Row, column: str) -> str:
    value = row.get(column)
    if value is None or not value.strip():
        raise ValueError(f"missing {column}")
    return value.strip()


def _opt(row: Row, column: str) -> str | None:
    value = row.get(column)
    if value is None:
        return None
    return value.strip() or None


# Row parsers. Each raises ValueError/KeyError on a bad row, or returns None
# for rows that are valid but filtered out.


def parse_route(row: Row) -> Route | None:
    route_type = int(_req(row, "route_type"))
    if route_type != BUS_ROUTE_TYPE:
        return None
    return Route(
        route_id=_req(row, "route_id"),
        route_short_name=_req(row, "route_short_name"),
        route_long_name=_opt(row, "route_long_name"),
        route_type=route_type,
    )


def parse_trip(row: Row) -> Trip:
    return Trip(
        trip_id=_req(row, "trip_id"),
        route_id=_req(row, "route_id"),
        service_id=_req(row, "service_id"),
        direction_id=int(_req(row, "direction_id")),
        shape_id=_opt(row, "shape_id"),
        trip_headsign=_opt(row, "trip_headsign"),
    )


def parse_stop_time(row: Row) -> StopTime | None:
    arrival_raw = _opt(row, "arrival_time")
    if arrival_raw is None:
        # Untimed intermediate stop; nothing to schedule against.
        return None

    departure_raw = _opt(row, "departure_time")
    arrival = parse_gtfs_time(arrival_raw)
    departure = arrival
    if departure_raw is not None:
        if gtfs_time_to_seconds(departure_raw) < gtfs_time_to_seconds(arrival_raw):
            raise ValueError("departure_time precedes arrival_time")
        departure = parse_gtfs_time(departure_raw)
        # 23:59:50 -> 24:00:10 wraps to 00:00:10 after the modulo.
        if departure < arrival:
            departure = arrival

    return StopTime(
        trip_id=_req(row, "trip_id"),
        stop_id=_req(row, "stop_id"),
        arrival_time=arrival,
        departure_time=departure,
        stop_sequence=int(_req(row, "stop_sequence")),
    )


def parse_shape_point(row: Row) -> ShapePoint:
    return ShapePoint(
        shape_id=_req(row, "shape_id"),
        shape_pt_sequence=int(_req(row, "shape_pt_sequence")),
        lat=float(_req(row, "shape_pt_lat")),
        lon=float(_req(row, "shape_pt_lon")),
    )


def parse_direction_name(row: Row) -> DirectionName:
    return DirectionName(
        route_short_name=_req(row, "route_name"),
        direction_id=int(_req(row, "direction_id")),
        direction_name=_req(row, "direction_name"),
        direction_do=_opt(row, "direction_do"),
    )


def parse_calendar(row: Row) -> Calendar:
    return Calendar(
        service_id=_req(row, "service_id"),
        start_date=parse_gtfs_date(_req(row, "start_date")),
        end_date=parse_gtfs_date(_req(row, "end_date")),
        monday=parse_gtfs_boolean(_req(row, "monday")),
        tuesday=parse_gtfs_boolean(_req(row, "tuesday")),
        wednesday=parse_gtfs_boolean(_req(row, "wednesday")),
        thursday=parse_gtfs_boolean(_req(row, "thursday")),
        friday=parse_gtfs_boolean(_req(row, "friday")),
        saturday=parse_gtfs_boolean(_req(row, "saturday")),
        sunday=parse_gtfs_boolean(_req(row, "sunday")),
    )


def parse_calendar_date(row: Row) -> CalendarDate:
    return CalendarDate(
        service_id=_req(row, "service_id"),
        date=parse_gtfs_date(_req(row, "date")),
        exception_type=ExceptionType(int(_req(row, "exception_type"))),
    )


def make_stop_parser(bounds: GeoBounds | None) -> Callable[[Row], Stop]:
    def parse_stop(row: Row) -> Stop:
        stop = Stop(
            stop_id=_req(row, "stop_id"),
            stop_name=_req(row, "stop_name"),
            lat=float(_req(row, "stop_lat")),
            lon=float(_req(row, "stop_lon")),
        )
        if bounds is not None and not bounds.contains(stop.lat, stop.lon):
            raise ValueError(f"stop outside agency bounds: ({stop.lat}, {stop.lon})")
        return stop

    return parse_stop


def parse_rows(
    file: str, rows: Iterable[Row], parse: Callable[[Row], T | None]
) -> Iterator[T]:
    """Yield parsed rows; bad rows are logged and skipped."""

    skipped = 0
    for line_no, row in enumerate(rows, start=2):
        try:
            item = parse(row)
        except (KeyError, TypeError, ValueError) as exc:
            skipped += 1
            logger.warning("Skipping %s line %d: %s", file, line_no, exc)
            continue
        if item is not None:
            yield item
    if skipped:
        logger.warning("Skipped %d invalid rows in %s", skipped, file)


@dataclass(slots=True)
class GtfsZipLoader:
    """Reads a GTFS static archive into domain objects.

    Env vars (used when fields are not passed explicitly):
      - GTFS_ZIP_PATH: path to the GTFS zip (default google_transit.zip)

    Required members: routes.txt, stops.txt, trips.txt, stop_times.txt.
    Other members are optional and skipped with a warning when absent.
    """

    zip_path: str | Path | None = None
    bounds: GeoBounds | None = None

    def _path(self) -> Path:
        value = self.zip_path or os.getenv("GTFS_ZIP_PATH") or "google_transit.zip"
        return Path(value)

    def _open(self) -> zipfile.ZipFile:
        path = self._path()
        if not path.is_file():
            raise LoadError(str(path), "file not found")
        try:
            return zipfile.ZipFile(path)
        except zipfile.BadZipFile as exc:
            raise LoadError(str(path), exc) from exc

    def iter_rows(self, archive: zipfile.ZipFile, name: str) -> Iterator[Row]:
        """Stream CSV rows of one archive member with cleaned header names."""

        try:
            raw = archive.open(name)
        except KeyError as exc:
            raise LoadError(name, "missing from archive") from exc

        with raw, io.TextIOWrapper(raw, encoding="utf-8-sig", newline="") as fp:
            reader = csv.reader(fp)
            header = next(reader, None)
            if header is None:
                return
            columns = [_clean_header(h) for h in header]
            for values in reader:
                if not values:
                    continue
                yield dict(zip(columns, values))

    def _load(
        self,
        archive: zipfile.ZipFile,
        name: str,
        parse: Callable[[Row], T | None],
        *,
        required: bool,
    ) -> tuple[T, ...]:
        if name not in archive.namelist():
            if required:
                raise LoadError(name, "missing from archive")
            logger.warning("Optional GTFS file %s not present; skipping", name)
            return ()

        try:
            items = tuple(parse_rows(name, self.iter_rows(archive, name), parse))
        except (OSError, UnicodeDecodeError, csv.Error, zipfile.BadZipFile) as exc:
            raise LoadError(name, exc) from exc

        logger.info("Loaded %d records from %s", len(items), name)
        return items

    def load_dataset(self) -> GtfsDataset:
        with self._open() as archive:
            dataset = GtfsDataset(
                routes=self._load(archive, ROUTES_FILE, parse_route, required=True),
                stops=self._load(
                    archive, STOPS_FILE, make_stop_parser(self.bounds), required=True
                ),
                trips=self._load(archive, TRIPS_FILE, parse_trip, required=True),
                stop_times=self._load(
                    archive, STOP_TIMES_FILE, parse_stop_time, required=True
                ),
                shape_points=self._load(
                    archive, SHAPES_FILE, parse_shape_point, required=False
                ),
                direction_names=self._load(
                    archive, DIRECTION_NAMES_FILE, parse_direction_name, required=False
                ),
                calendars=self._load(
                    archive, CALENDAR_FILE, parse_calendar, required=False
                ),
                calendar_dates=self._load(
                    archive, CALENDAR_DATES_FILE, parse_calendar_date, required=False
                ),
            )

        for name, items in (
            (ROUTES_FILE, dataset.routes),
            (STOPS_FILE, dataset.stops),
            (TRIPS_FILE, dataset.trips),
            (STOP_TIMES_FILE, dataset.stop_times),
        ):
            if not items:
                raise LoadError(name, "no usable records")

        return dataset
