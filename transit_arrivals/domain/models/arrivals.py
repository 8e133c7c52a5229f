from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum

from .gtfs import Stop
from .realtime import VehiclePosition


@dataclass(frozen=True, slots=True)
class ShapeDistanceResult:
    """Vehicle and stop projected onto a trip polyline.

    Arc lengths are meters from the first shape point.
    """

    route_distance_m: float
    vehicle_arc_m: float
    stop_arc_m: float
    total_arc_m: float
    vehicle_offset_m: float
    passed: bool

    @property
    def progress_pct(self) -> float:
        if self.total_arc_m <= 0.0:
            return 0.0
        return 100.0 * self.vehicle_arc_m / self.total_arc_m


@dataclass(frozen=True, slots=True)
class EtaResult:
    distance_m: float
    eta_seconds: int
    eta_minutes: int
    used_shape: bool = False
    progress_pct: float | None = None


class DelayStatus(Enum):
    EARLY = "Early"
    ON_TIME = "On Time"
    DELAYED = "Delayed"

    @property
    def display_name(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class DelayInfo:
    scheduled: time
    predicted: time
    delay_minutes: int
    status: DelayStatus


@dataclass(frozen=True, slots=True)
class ScheduledArrival:
    trip_id: str
    stop_id: str
    arrival_time: time
    stop_sequence: int


@dataclass(frozen=True, slots=True)
class ScheduleAdherence:
    """Scheduled arrival of a live vehicle's trip at a stop, with its delay."""

    scheduled: ScheduledArrival | None = None
    delay: DelayInfo | None = None


@dataclass(frozen=True, slots=True)
class ScheduledBus:
    scheduled_arrival: time
    eta_minutes: int
    is_real_time: bool = False


@dataclass(frozen=True, slots=True)
class ApproachingVehicle:
    vehicle: VehiclePosition
    target_stop: Stop
    eta: EtaResult
    calculated_at: datetime


@dataclass(frozen=True, slots=True)
class VehicleStats:
    total_vehicles: int
    fresh_vehicles: int
    direction0_count: int
    direction1_count: int


@dataclass(frozen=True, slots=True)
class RealTimeBus:
    vehicle_id: str
    trip_id: str | None
    eta_minutes: int
    eta_seconds: int
    distance_m: float
    current_status: str | None
    last_updated: datetime
    scheduled_arrival: time | None = None
    delay_minutes: int | None = None
    delay_status: DelayStatus | None = None
