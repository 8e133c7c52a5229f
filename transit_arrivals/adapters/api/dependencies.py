from __future__ import annotations

from fastapi import Depends, Request

from transit_arrivals.app.services.transit_query_service import TransitQueryService
from transit_arrivals.bootstrap import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("Service container not initialised")
    return container


def get_query_service(
    container: ServiceContainer = Depends(get_container),
) -> TransitQueryService:
    return container.query
