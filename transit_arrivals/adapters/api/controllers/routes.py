from __future__ import annotations

from fastapi import APIRouter, Depends

from transit_arrivals.adapters.api.dependencies import get_query_service
from transit_arrivals.adapters.api.schemas.routes import (
    ArrivalsSchema,
    DirectionSchema,
    RealTimeBusSchema,
    RouteInfoSchema,
    RouteSchema,
    ScheduledBusSchema,
    StopInfoSchema,
    StopSchema,
    VehicleStatsSchema,
)
from transit_arrivals.app.services.transit_query_service import TransitQueryService
from transit_arrivals.domain.models import Arrivals

router = APIRouter(prefix="/api/routes", tags=["routes"])


def _arrivals_to_schema(arrivals: Arrivals) -> ArrivalsSchema:
    return ArrivalsSchema(
        route=RouteInfoSchema(
            route_short_name=arrivals.route_short_name,
            direction_name=arrivals.direction_name,
        ),
        stop=StopInfoSchema(
            stop_id=arrivals.stop.stop_id, stop_name=arrivals.stop.stop_name
        ),
        real_time_buses=[
            RealTimeBusSchema(
                vehicle_id=b.vehicle_id,
                trip_id=b.trip_id,
                eta_minutes=b.eta_minutes,
                eta_seconds=b.eta_seconds,
                distance_meters=b.distance_m,
                current_status=b.current_status,
                last_updated=b.last_updated,
                scheduled_arrival=b.scheduled_arrival,
                delay_minutes=b.delay_minutes,
                delay_status=b.delay_status.display_name if b.delay_status else None,
            )
            for b in arrivals.real_time
        ],
        scheduled_buses=[
            ScheduledBusSchema(
                scheduled_arrival=s.scheduled_arrival,
                eta_minutes=s.eta_minutes,
                is_real_time=s.is_real_time,
            )
            for s in arrivals.scheduled
        ],
    )


@router.get("", response_model=list[RouteSchema])
def list_routes(
    service: TransitQueryService = Depends(get_query_service),
) -> list[RouteSchema]:
    return [
        RouteSchema(
            route_id=r.route_id,
            route_short_name=r.route_short_name,
            route_long_name=r.route_long_name,
        )
        for r in service.list_routes()
    ]


@router.get("/{route_id}/directions", response_model=list[DirectionSchema])
def list_directions(
    route_id: str,
    service: TransitQueryService = Depends(get_query_service),
) -> list[DirectionSchema]:
    return [
        DirectionSchema(
            direction_id=d.direction_id,
            direction_name=d.direction_name,
            trip_headsign=d.trip_headsign,
        )
        for d in service.directions_of(route_id)
    ]


@router.get(
    "/{route_id}/directions/{direction_id}/stops", response_model=list[StopSchema]
)
def list_stops(
    route_id: str,
    direction_id: int,
    service: TransitQueryService = Depends(get_query_service),
) -> list[StopSchema]:
    return [
        StopSchema(
            stop_id=rs.stop.stop_id,
            stop_name=rs.stop.stop_name,
            stop_sequence=rs.sequence,
            latitude=rs.stop.lat,
            longitude=rs.stop.lon,
        )
        for rs in service.stops_of(route_id, direction_id)
    ]


@router.get(
    "/{route_id}/directions/{direction_id}/stops/{stop_id}/arrivals",
    response_model=ArrivalsSchema,
)
def get_arrivals(
    route_id: str,
    direction_id: int,
    stop_id: str,
    service: TransitQueryService = Depends(get_query_service),
) -> ArrivalsSchema:
    return _arrivals_to_schema(service.arrivals(route_id, direction_id, stop_id))


@router.get("/{route_id}/vehicles", response_model=VehicleStatsSchema)
def get_vehicle_stats(
    route_id: str,
    service: TransitQueryService = Depends(get_query_service),
) -> VehicleStatsSchema:
    stats = service.route_stats(route_id)
    return VehicleStatsSchema(
        total_vehicles=stats.total_vehicles,
        fresh_vehicles=stats.fresh_vehicles,
        direction0_count=stats.direction0_count,
        direction1_count=stats.direction1_count,
    )
