from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

from transit_arrivals.domain.models import VehiclePosition

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VehicleStoreStats:
    total_vehicles: int
    unique_routes: int
    last_update: datetime | None


@dataclass(slots=True)
class VehicleStore:
    """Latest position per vehicle_id, last write wins.

    Readers get copies taken under the lock, so iteration never races with
    the consumer.
    """

    _vehicles: dict[str, VehiclePosition] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _last_update: datetime | None = field(default=None, init=False)

    def put(self, vehicle: VehiclePosition) -> None:
        with self._lock:
            self._vehicles[vehicle.vehicle_id] = vehicle
            self._last_update = datetime.now(timezone.utc)

    def get(self, vehicle_id: str) -> VehiclePosition | None:
        with self._lock:
            return self._vehicles.get(vehicle_id)

    def all(self) -> list[VehiclePosition]:
        with self._lock:
            return list(self._vehicles.values())

    def by_route(self, route_id: str) -> list[VehiclePosition]:
        return [v for v in self.all() if v.route_id == route_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._vehicles)

    def evict_older_than(self, cutoff_epoch: int) -> int:
        """Drop entries whose timestamp is before cutoff_epoch; return the count."""

        with self._lock:
            stale = [
                vid for vid, v in self._vehicles.items() if v.timestamp < cutoff_epoch
            ]
            for vid in stale:
                del self._vehicles[vid]
        if stale:
            logger.info("Evicted %d stale vehicles", len(stale))
        return len(stale)

    def stats(self) -> VehicleStoreStats:
        with self._lock:
            routes = {v.route_id for v in self._vehicles.values() if v.route_id}
            return VehicleStoreStats(
                total_vehicles=len(self._vehicles),
                unique_routes=len(routes),
                last_update=self._last_update,
            )
