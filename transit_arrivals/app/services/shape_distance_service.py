from __future__ import annotations

import logging
from dataclasses import dataclass

from transit_arrivals.app.ports.output import IGtfsRepository
from transit_arrivals.domain.algorithms.shape_distance import (
    MAX_OFF_ROUTE_M,
    shape_route_distance,
)
from transit_arrivals.domain.models import (
    GeoPoint,
    ShapeDistanceResult,
    Stop,
    Trip,
    VehiclePosition,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ShapeDistanceService:
    gtfs_repository: IGtfsRepository
    max_off_route_m: float = MAX_OFF_ROUTE_M

    def calculate(
        self, vehicle: VehiclePosition, trip: Trip, target_stop: Stop
    ) -> ShapeDistanceResult | None:
        """Route distance from vehicle to stop along the trip's shape.

        None means the caller should fall back to straight-line distance.
        """

        if not trip.shape_id:
            return None

        points = self.gtfs_repository.find_shape_points(trip.shape_id)
        if len(points) < 2:
            logger.debug("Shape %s has %d points", trip.shape_id, len(points))
            return None

        result = shape_route_distance(
            [GeoPoint(lat=p.lat, lon=p.lon) for p in points],
            GeoPoint(lat=vehicle.lat, lon=vehicle.lon),
            target_stop.location,
            max_offset_m=self.max_off_route_m,
        )
        if result is None:
            logger.debug(
                "Vehicle %s is off-route for shape %s",
                vehicle.vehicle_id,
                trip.shape_id,
            )
        return result
