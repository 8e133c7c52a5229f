from __future__ import annotations

from transit_arrivals.adapters.api.schemas.routes import CamelModel


class RouteSearchResultSchema(CamelModel):
    route_id: str
    route_short_name: str
    route_long_name: str | None = None
    relevance_score: float


class StopSearchResultSchema(CamelModel):
    stop_id: str
    stop_name: str
    stop_lat: float
    stop_lon: float
    relevance_score: float
