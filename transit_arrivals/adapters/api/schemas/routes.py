from __future__ import annotations

from datetime import datetime, time

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RouteSchema(CamelModel):
    route_id: str
    route_short_name: str
    route_long_name: str | None = None


class DirectionSchema(CamelModel):
    direction_id: int
    direction_name: str
    trip_headsign: str | None = None


class StopSchema(CamelModel):
    stop_id: str
    stop_name: str
    stop_sequence: int
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class RouteInfoSchema(CamelModel):
    route_short_name: str
    direction_name: str


class StopInfoSchema(CamelModel):
    stop_id: str
    stop_name: str


class RealTimeBusSchema(CamelModel):
    vehicle_id: str
    trip_id: str | None = None
    eta_minutes: int
    eta_seconds: int
    distance_meters: float
    current_status: str | None = None
    last_updated: datetime
    scheduled_arrival: time | None = None
    delay_minutes: int | None = None
    delay_status: str | None = None


class ScheduledBusSchema(CamelModel):
    scheduled_arrival: time
    eta_minutes: int
    is_real_time: bool = False


class ArrivalsSchema(CamelModel):
    route: RouteInfoSchema
    stop: StopInfoSchema
    real_time_buses: list[RealTimeBusSchema] = []
    scheduled_buses: list[ScheduledBusSchema] = []


class VehicleStatsSchema(CamelModel):
    total_vehicles: int
    fresh_vehicles: int
    direction0_count: int = Field(..., alias="direction0Count")
    direction1_count: int = Field(..., alias="direction1Count")
