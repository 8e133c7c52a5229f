from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from transit_arrivals.app.ports.output import IGtfsRepository
from transit_arrivals.app.services.shape_distance_service import ShapeDistanceService
from transit_arrivals.domain.algorithms.geo_utils import distance
from transit_arrivals.domain.models import EtaResult, Stop, VehiclePosition

logger = logging.getLogger(__name__)

DEFAULT_AVG_SPEED_KMH = 35.0
ETA_BUFFER = 1.2
MIN_ETA_S = 30


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(slots=True)
class EtaService:
    """Constant-speed ETA model.

    Distance is measured along the trip shape when possible and falls back to
    the great-circle distance otherwise.
    """

    gtfs_repository: IGtfsRepository
    shape_distance: ShapeDistanceService
    avg_speed_kmh: float = DEFAULT_AVG_SPEED_KMH

    @property
    def avg_speed_ms(self) -> float:
        return self.avg_speed_kmh / 3.6

    def eta_seconds(self, distance_m: float) -> int:
        if distance_m <= 0.0:
            return 0
        eta_s = round_half_up(ETA_BUFFER * distance_m / self.avg_speed_ms)
        return max(MIN_ETA_S, eta_s)

    @staticmethod
    def eta_minutes(eta_s: int) -> int:
        return round_half_up(eta_s / 60.0)

    def eta(self, vehicle: VehiclePosition, stop: Stop) -> EtaResult:
        distance_m: float | None = None
        progress: float | None = None

        trip = None
        if vehicle.trip_id:
            trip = self.gtfs_repository.find_trip(vehicle.trip_id)
        if trip is not None and trip.shape_id:
            shape_result = self.shape_distance.calculate(vehicle, trip, stop)
            if shape_result is not None:
                distance_m = shape_result.route_distance_m
                progress = shape_result.progress_pct

        used_shape = distance_m is not None
        if distance_m is None:
            distance_m = distance(vehicle.lat, vehicle.lon, stop.lat, stop.lon)

        eta_s = self.eta_seconds(distance_m)
        return EtaResult(
            distance_m=distance_m,
            eta_seconds=eta_s,
            eta_minutes=self.eta_minutes(eta_s),
            used_shape=used_shape,
            progress_pct=progress,
        )
