from __future__ import annotations

from dataclasses import dataclass

from .arrivals import RealTimeBus, ScheduledBus
from .gtfs import Route, Stop


@dataclass(frozen=True, slots=True)
class Direction:
    direction_id: int
    direction_name: str
    trip_headsign: str | None = None


@dataclass(frozen=True, slots=True)
class RouteStop:
    stop: Stop
    sequence: int  # 1-based position along the direction


@dataclass(frozen=True, slots=True)
class Arrivals:
    route_short_name: str
    direction_name: str
    stop: Stop
    real_time: tuple[RealTimeBus, ...]
    scheduled: tuple[ScheduledBus, ...]


@dataclass(frozen=True, slots=True)
class RouteSearchHit:
    route: Route
    score: float


@dataclass(frozen=True, slots=True)
class StopSearchHit:
    stop: Stop
    score: float
