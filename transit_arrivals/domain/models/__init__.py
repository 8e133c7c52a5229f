from .arrivals import (
    ApproachingVehicle,
    DelayInfo,
    DelayStatus,
    EtaResult,
    RealTimeBus,
    ScheduleAdherence,
    ScheduledArrival,
    ScheduledBus,
    ShapeDistanceResult,
    VehicleStats,
)
from .geo import GeoBounds, GeoPoint
from .gtfs import (
    Calendar,
    CalendarDate,
    DirectionName,
    ExceptionType,
    Route,
    ShapePoint,
    Stop,
    StopTime,
    Trip,
)
from .query import Arrivals, Direction, RouteSearchHit, RouteStop, StopSearchHit
from .realtime import VehiclePosition

__all__ = [
    "ApproachingVehicle",
    "Arrivals",
    "Calendar",
    "CalendarDate",
    "DelayInfo",
    "DelayStatus",
    "Direction",
    "DirectionName",
    "EtaResult",
    "ExceptionType",
    "GeoBounds",
    "GeoPoint",
    "RealTimeBus",
    "Route",
    "RouteSearchHit",
    "RouteStop",
    "ScheduleAdherence",
    "ScheduledArrival",
    "ScheduledBus",
    "ShapeDistanceResult",
    "ShapePoint",
    "Stop",
    "StopSearchHit",
    "StopTime",
    "Trip",
    "VehiclePosition",
    "VehicleStats",
]
