from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from transit_arrivals.app.ports.output import IGtfsRepository
from transit_arrivals.app.services.eta_service import EtaService
from transit_arrivals.app.services.vehicle_store import VehicleStore
from transit_arrivals.domain.models import ApproachingVehicle, VehicleStats

logger = logging.getLogger(__name__)

MAX_APPROACH_DISTANCE_M = 3000.0
MAX_POSITION_AGE_S = 300


@dataclass(slots=True)
class VehicleCorrelationService:
    """Matches live vehicles to a (route, direction, stop) query."""

    gtfs_repository: IGtfsRepository
    store: VehicleStore
    eta_service: EtaService
    max_distance_m: float = MAX_APPROACH_DISTANCE_M
    max_age_s: int = MAX_POSITION_AGE_S
    clock: Callable[[], float] = field(default=time.time, repr=False)

    def vehicles_approaching(
        self,
        route_id: str,
        direction_id: int,
        stop_id: str,
        now_epoch: int | None = None,
    ) -> list[ApproachingVehicle]:
        stop = self.gtfs_repository.find_stop(stop_id)
        if stop is None:
            logger.warning("Stop not found: %s", stop_id)
            return []

        now_epoch = int(self.clock()) if now_epoch is None else now_epoch
        calculated_at = datetime.fromtimestamp(now_epoch, tz=timezone.utc)

        vehicles = self.store.all()
        candidates = [
            v
            for v in vehicles
            if v.route_id == route_id
            and v.direction_id == direction_id
            and v.is_fresh(now_epoch, self.max_age_s)
        ]
        logger.debug(
            "%d fresh vehicles on route %s direction %d (of %d stored)",
            len(candidates),
            route_id,
            direction_id,
            len(vehicles),
        )

        approaching = []
        for vehicle in candidates:
            eta = self.eta_service.eta(vehicle, stop)
            if eta.distance_m > self.max_distance_m:
                continue
            approaching.append(
                ApproachingVehicle(
                    vehicle=vehicle,
                    target_stop=stop,
                    eta=eta,
                    calculated_at=calculated_at,
                )
            )

        approaching.sort(key=lambda a: a.eta.distance_m)
        logger.info(
            "%d vehicles approaching stop %s within %.1fkm",
            len(approaching),
            stop.stop_name,
            self.max_distance_m / 1000,
        )
        return approaching

    def vehicle_stats(
        self, route_id: str, now_epoch: int | None = None
    ) -> VehicleStats:
        now_epoch = int(self.clock()) if now_epoch is None else now_epoch
        on_route = self.store.by_route(route_id)
        fresh = [v for v in on_route if v.is_fresh(now_epoch, self.max_age_s)]
        return VehicleStats(
            total_vehicles=len(on_route),
            fresh_vehicles=len(fresh),
            direction0_count=sum(1 for v in fresh if v.direction_id == 0),
            direction1_count=sum(1 for v in fresh if v.direction_id == 1),
        )
