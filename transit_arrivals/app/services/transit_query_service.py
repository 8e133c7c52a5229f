from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from transit_arrivals.app.ports.output import IGtfsRepository
from transit_arrivals.app.services.scheduled_arrival_service import (
    ScheduledArrivalService,
    upcoming_buses,
)
from transit_arrivals.app.services.service_calendar_service import (
    ServiceCalendarService,
)
from transit_arrivals.app.services.vehicle_correlation_service import (
    VehicleCorrelationService,
)
from transit_arrivals.domain.algorithms.search_scoring import (
    effective_limit,
    route_relevance,
    stop_relevance,
)
from transit_arrivals.domain.exceptions.transit import QueryBadRequest, QueryNotFound
from transit_arrivals.domain.models import (
    Arrivals,
    Direction,
    RealTimeBus,
    Route,
    RouteSearchHit,
    RouteStop,
    ScheduledBus,
    Stop,
    StopSearchHit,
    VehicleStats,
)

logger = logging.getLogger(__name__)

DEFAULT_ROUTE_SEARCH_LIMIT = 10
DEFAULT_STOP_SEARCH_LIMIT = 15


def _route_sort_key(route: Route) -> tuple[int, int, str]:
    name = route.route_short_name
    if name.isdigit():
        return (0, int(name), name)
    return (1, 0, name)


def _normalized_query(query: str | None) -> str:
    stripped = (query or "").strip()
    if not stripped:
        raise QueryBadRequest("Query parameter 'q' must not be empty")
    return stripped


@dataclass(slots=True)
class TransitQueryService:
    """Read side of the service: routes, stops, arrivals and search.

    Every public operation raises QueryNotFound for unknown routes, directions
    or stops, and QueryBadRequest for an empty search query.
    """

    gtfs_repository: IGtfsRepository
    correlation: VehicleCorrelationService
    scheduled_arrivals: ScheduledArrivalService
    calendar: ServiceCalendarService
    timezone: ZoneInfo
    clock: Callable[[ZoneInfo], datetime] = field(
        default=lambda tz: datetime.now(tz), repr=False
    )

    def now(self) -> datetime:
        return self.clock(self.timezone)

    def _require_route(self, route_id: str) -> Route:
        route = self.gtfs_repository.find_route(route_id)
        if route is None:
            logger.warning("Route not found: %s", route_id)
            raise QueryNotFound(f"Route not found: {route_id}")
        return route

    def _require_trips(self, route_id: str, direction_id: int) -> None:
        trips = self.gtfs_repository.find_trips_by_route_and_direction(
            route_id, direction_id
        )
        if not trips:
            logger.warning("No trips for route %s direction %d", route_id, direction_id)
            raise QueryNotFound(
                f"No trips for route {route_id} direction {direction_id}"
            )

    def direction_name(self, route: Route, direction_id: int) -> str:
        name = self.gtfs_repository.find_direction_name(
            route.route_short_name, direction_id
        )
        if name is None:
            return f"Direction {direction_id}"
        return name.direction_name

    # Browsing

    def list_routes(self) -> list[Route]:
        return sorted(self.gtfs_repository.all_routes(), key=_route_sort_key)

    def directions_of(self, route_id: str) -> list[Direction]:
        route = self._require_route(route_id)
        trips = self.gtfs_repository.find_trips_by_route(route_id)

        # First trip per direction supplies the sample headsign.
        first_trip = {}
        for trip in trips:
            first_trip.setdefault(trip.direction_id, trip)

        return [
            Direction(
                direction_id=direction_id,
                direction_name=self.direction_name(route, direction_id),
                trip_headsign=first_trip[direction_id].trip_headsign,
            )
            for direction_id in sorted(first_trip)
        ]

    def stops_of(self, route_id: str, direction_id: int) -> list[RouteStop]:
        self._require_route(route_id)
        self._require_trips(route_id, direction_id)

        stops = self.gtfs_repository.stops_for_direction(route_id, direction_id)
        if not stops:
            logger.warning("No stops for route %s direction %d", route_id, direction_id)
            raise QueryNotFound(
                f"No stops for route {route_id} direction {direction_id}"
            )
        return [RouteStop(stop=s, sequence=i) for i, s in enumerate(stops, start=1)]

    # Arrivals

    def arrivals(self, route_id: str, direction_id: int, stop_id: str) -> Arrivals:
        route = self._require_route(route_id)
        self._require_trips(route_id, direction_id)

        stop = self.gtfs_repository.find_stop(stop_id)
        if stop is None:
            logger.warning("Stop not found: %s", stop_id)
            raise QueryNotFound(f"Stop not found: {stop_id}")

        served = self.gtfs_repository.stops_for_direction(route_id, direction_id)
        if not any(s.stop_id == stop_id for s in served):
            logger.warning(
                "Stop %s does not serve route %s direction %d",
                stop_id,
                route_id,
                direction_id,
            )
            raise QueryNotFound(
                f"Stop {stop_id} does not serve route {route_id} "
                f"direction {direction_id}"
            )

        # One clock reading for both lists.
        now = self.now()
        real_time = self.real_time_buses(route_id, direction_id, stop, now)
        scheduled = self.scheduled_next_hour(route_id, direction_id, stop_id, now)

        logger.debug(
            "Arrivals for stop %s on route %s direction %d: %d real-time, %d scheduled",
            stop.stop_name,
            route.route_short_name,
            direction_id,
            len(real_time),
            len(scheduled),
        )
        return Arrivals(
            route_short_name=route.route_short_name,
            direction_name=self.direction_name(route, direction_id),
            stop=stop,
            real_time=tuple(real_time),
            scheduled=tuple(scheduled),
        )

    def real_time_buses(
        self, route_id: str, direction_id: int, stop: Stop, now: datetime
    ) -> list[RealTimeBus]:
        approaching = self.correlation.vehicles_approaching(
            route_id, direction_id, stop.stop_id, now_epoch=int(now.timestamp())
        )

        buses: list[RealTimeBus] = []
        for av in approaching:
            vehicle = av.vehicle
            adherence = self.scheduled_arrivals.adherence(
                vehicle, stop.stop_id, av.eta.eta_seconds, now.time()
            )
            delay = adherence.delay
            buses.append(
                RealTimeBus(
                    vehicle_id=vehicle.vehicle_id,
                    trip_id=vehicle.trip_id,
                    eta_minutes=av.eta.eta_minutes,
                    eta_seconds=av.eta.eta_seconds,
                    distance_m=av.eta.distance_m,
                    current_status=vehicle.current_status,
                    last_updated=av.calculated_at,
                    scheduled_arrival=(
                        adherence.scheduled.arrival_time
                        if adherence.scheduled
                        else None
                    ),
                    delay_minutes=delay.delay_minutes if delay else None,
                    delay_status=delay.status if delay else None,
                )
            )
        return buses

    def scheduled_next_hour(
        self,
        route_id: str,
        direction_id: int,
        stop_id: str,
        now: datetime | None = None,
    ) -> list[ScheduledBus]:
        now = now or self.now()
        # Every trip serving the stop counts, whatever its route.
        stop_times = self.gtfs_repository.find_stop_times_by_stop(stop_id)
        active = self.calendar.filter_active_stop_times(stop_times, day=now.date())
        buses = upcoming_buses(active, now.time())
        logger.debug(
            "%d scheduled arrivals at stop %s in the next hour", len(buses), stop_id
        )
        return buses

    def route_stats(self, route_id: str) -> VehicleStats:
        self._require_route(route_id)
        now = self.now()
        return self.correlation.vehicle_stats(route_id, now_epoch=int(now.timestamp()))

    # Search

    def search_routes(
        self, query: str | None, limit: int = DEFAULT_ROUTE_SEARCH_LIMIT
    ) -> list[RouteSearchHit]:
        needle = _normalized_query(query).upper()

        hits = []
        for route in self.gtfs_repository.search_routes_by_short_name(needle):
            score = route_relevance(
                route.route_short_name, route.route_long_name, needle
            )
            if score > 0:
                hits.append(RouteSearchHit(route=route, score=score))

        hits.sort(key=lambda h: h.score, reverse=True)
        hits = hits[: effective_limit(limit)]
        logger.debug("Found %d route matches for %r", len(hits), needle)
        return hits

    def search_stops(
        self,
        query: str | None,
        route_id: str,
        direction_id: int,
        limit: int = DEFAULT_STOP_SEARCH_LIMIT,
    ) -> list[StopSearchHit]:
        needle = _normalized_query(query).lower()
        self._require_route(route_id)

        stops = self.gtfs_repository.stops_for_direction(route_id, direction_id)
        if not stops:
            logger.warning("No stops for route %s direction %d", route_id, direction_id)
            raise QueryNotFound(
                f"No stops for route {route_id} direction {direction_id}"
            )

        hits = []
        for stop in stops:
            score = stop_relevance(stop.stop_name, needle)
            if score > 0:
                hits.append(StopSearchHit(stop=stop, score=score))

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[: effective_limit(limit)]
