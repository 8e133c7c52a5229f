from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class VehiclePosition:
    """Latest observation of a single vehicle.

    The JSON form uses the camelCase field names shared by every producer and
    consumer of the vehicle-positions topic; see `to_payload`.
    """

    vehicle_id: str
    lat: float
    lon: float
    timestamp: int
    trip_id: str | None = None
    route_id: str | None = None
    direction_id: int | None = None
    bearing: float | None = None
    speed: float | None = None
    stop_id: str | None = None
    current_status: str | None = None

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and -90.0 <= self.lat <= 90.0):
            raise ValueError(f"Invalid latitude: {self.lat}")
        if not (math.isfinite(self.lon) and -180.0 <= self.lon <= 180.0):
            raise ValueError(f"Invalid longitude: {self.lon}")

    def age_s(self, now_epoch: int) -> int:
        return now_epoch - self.timestamp

    def is_fresh(self, now_epoch: int, max_age_s: int) -> bool:
        return self.age_s(now_epoch) <= max_age_s

    def to_payload(self) -> dict[str, Any]:
        return {
            "vehicleId": self.vehicle_id,
            "tripId": self.trip_id,
            "routeId": self.route_id,
            "latitude": self.lat,
            "longitude": self.lon,
            "bearing": self.bearing,
            "speed": self.speed,
            "stopId": self.stop_id,
            "currentStatus": self.current_status,
            "timestamp": self.timestamp,
            "directionId": self.direction_id,
        }

    def to_json_bytes(self) -> bytes:
        return json.dumps(self.to_payload(), separators=(",", ":")).encode("utf-8")

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> "VehiclePosition":
        """Build from a decoded JSON object.

        Raises KeyError/TypeError/ValueError on missing or malformed fields.
        """

        vehicle_id = payload["vehicleId"]
        if not isinstance(vehicle_id, str) or not vehicle_id:
            raise ValueError(f"Invalid vehicleId: {vehicle_id!r}")

        direction_id = payload.get("directionId")
        bearing = payload.get("bearing")
        speed = payload.get("speed")

        return VehiclePosition(
            vehicle_id=vehicle_id,
            trip_id=_opt_str(payload.get("tripId")),
            route_id=_opt_str(payload.get("routeId")),
            lat=float(payload["latitude"]),
            lon=float(payload["longitude"]),
            bearing=float(bearing) if bearing is not None else None,
            speed=float(speed) if speed is not None else None,
            stop_id=_opt_str(payload.get("stopId")),
            current_status=_opt_str(payload.get("currentStatus")),
            timestamp=int(payload["timestamp"]),
            direction_id=int(direction_id) if direction_id is not None else None,
        )

    @staticmethod
    def from_json_bytes(raw: bytes | str) -> "VehiclePosition":
        decoded = json.loads(raw)
        if not isinstance(decoded, dict):
            raise ValueError("VehiclePosition JSON must be an object")
        return VehiclePosition.from_payload(decoded)


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"Expected string, got {type(value).__name__}")
    return value
