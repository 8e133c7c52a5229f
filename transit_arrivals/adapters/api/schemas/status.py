from __future__ import annotations

from datetime import date, datetime

from pydantic import Field

from transit_arrivals.adapters.api.schemas.routes import CamelModel


class PollingStatsSchema(CamelModel):
    total_polls: int
    enabled: bool
    interval_seconds: int
    last_success: datetime | None = None


class HealthSchema(CamelModel):
    status: str = "UP"
    service: str
    polling: PollingStatsSchema


class GtfsStatsSchema(CamelModel):
    routes: int
    stops: int
    trips: int
    stop_times: int
    shape_points: int
    direction_names: int
    calendars: int
    calendar_dates: int
    last_load_time: datetime | None = None


class VehicleStoreStatsSchema(CamelModel):
    total_vehicles: int
    unique_routes: int
    last_update: datetime | None = None
    messages_consumed: int
    decode_failures: int


class ServiceStatsSchema(CamelModel):
    service_date: date = Field(..., alias="date")
    total_services: int
    active_services: int
    inactive_services: int
    exceptions_on_date: int


class SystemStatsSchema(CamelModel):
    gtfs: GtfsStatsSchema
    vehicles: VehicleStoreStatsSchema
    services: ServiceStatsSchema
