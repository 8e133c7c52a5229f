from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from transit_arrivals.adapters.api.dependencies import get_query_service
from transit_arrivals.adapters.api.schemas.search import (
    RouteSearchResultSchema,
    StopSearchResultSchema,
)
from transit_arrivals.app.services.transit_query_service import (
    DEFAULT_ROUTE_SEARCH_LIMIT,
    DEFAULT_STOP_SEARCH_LIMIT,
    TransitQueryService,
)

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("/routes", response_model=list[RouteSearchResultSchema])
def search_routes(
    q: str | None = Query(default=None),
    limit: int = Query(default=DEFAULT_ROUTE_SEARCH_LIMIT),
    service: TransitQueryService = Depends(get_query_service),
) -> list[RouteSearchResultSchema]:
    return [
        RouteSearchResultSchema(
            route_id=h.route.route_id,
            route_short_name=h.route.route_short_name,
            route_long_name=h.route.route_long_name,
            relevance_score=h.score,
        )
        for h in service.search_routes(q, limit)
    ]


@router.get("/stops", response_model=list[StopSearchResultSchema])
def search_stops(
    route_id: str = Query(..., alias="routeId"),
    direction_id: int = Query(..., alias="directionId"),
    q: str | None = Query(default=None),
    limit: int = Query(default=DEFAULT_STOP_SEARCH_LIMIT),
    service: TransitQueryService = Depends(get_query_service),
) -> list[StopSearchResultSchema]:
    return [
        StopSearchResultSchema(
            stop_id=h.stop.stop_id,
            stop_name=h.stop.stop_name,
            stop_lat=h.stop.lat,
            stop_lon=h.stop.lon,
            relevance_score=h.score,
        )
        for h in service.search_stops(q, route_id, direction_id, limit)
    ]
