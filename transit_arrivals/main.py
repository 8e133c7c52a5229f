from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from transit_arrivals.adapters.api.controllers.routes import router as routes_router
from transit_arrivals.adapters.api.controllers.search import router as search_router
from transit_arrivals.adapters.api.dependencies import get_container
from transit_arrivals.adapters.api.schemas.status import (
    GtfsStatsSchema,
    HealthSchema,
    PollingStatsSchema,
    ServiceStatsSchema,
    SystemStatsSchema,
    VehicleStoreStatsSchema,
)
from transit_arrivals.bootstrap import ServiceContainer, build_container
from transit_arrivals.config import AppConfig, configure_logging
from transit_arrivals.domain.exceptions.transit import QueryBadRequest, QueryNotFound

SERVICE_NAME = "transit-arrivals"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    container: ServiceContainer | None = app.state.container
    if container is None:
        config = AppConfig.from_env()
        configure_logging(config.log_level)
        container = build_container(config)
        # Blocking zip read; the app does not serve until it finishes.
        await asyncio.to_thread(container.load_gtfs)
        app.state.container = container

    container.start_background_tasks()
    logger.info("%s started", SERVICE_NAME)
    try:
        yield
    finally:
        await container.stop_background_tasks()
        logger.info("%s stopped", SERVICE_NAME)


def _polling_stats(container: ServiceContainer) -> PollingStatsSchema:
    stats = container.ingest.stats()
    return PollingStatsSchema(
        total_polls=stats.total_polls,
        enabled=stats.enabled,
        interval_seconds=stats.interval_seconds,
        last_success=stats.last_success,
    )


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    app = FastAPI(title="Transit Arrivals", lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(routes_router)
    app.include_router(search_router)

    @app.exception_handler(QueryNotFound)
    async def not_found_handler(request: Request, exc: QueryNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(QueryBadRequest)
    async def bad_request_handler(
        request: Request, exc: QueryBadRequest
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Keep 500 bodies JSON and generic; the traceback goes to the log."""

        logging.getLogger("uvicorn.error").exception(
            "Unhandled exception", extra={"path": str(request.url.path)}
        )
        return JSONResponse(
            status_code=500, content={"detail": "Internal Server Error"}
        )

    @app.get("/health", response_model=HealthSchema)
    def health(container: ServiceContainer = Depends(get_container)) -> HealthSchema:
        return HealthSchema(
            status="UP", service=SERVICE_NAME, polling=_polling_stats(container)
        )

    @app.get("/stats", response_model=PollingStatsSchema)
    def polling_stats(
        container: ServiceContainer = Depends(get_container),
    ) -> PollingStatsSchema:
        return _polling_stats(container)

    @app.get("/api/stats", response_model=SystemStatsSchema)
    def system_stats(
        container: ServiceContainer = Depends(get_container),
    ) -> SystemStatsSchema:
        gtfs = container.gtfs_repository.stats()
        vehicles = container.vehicle_store.stats()
        services = container.calendar.service_stats()
        return SystemStatsSchema(
            gtfs=GtfsStatsSchema(
                routes=gtfs.routes,
                stops=gtfs.stops,
                trips=gtfs.trips,
                stop_times=gtfs.stop_times,
                shape_points=gtfs.shape_points,
                direction_names=gtfs.direction_names,
                calendars=gtfs.calendars,
                calendar_dates=gtfs.calendar_dates,
                last_load_time=gtfs.last_load_time,
            ),
            vehicles=VehicleStoreStatsSchema(
                total_vehicles=vehicles.total_vehicles,
                unique_routes=vehicles.unique_routes,
                last_update=vehicles.last_update,
                messages_consumed=container.consumer.message_count,
                decode_failures=container.consumer.decode_failures,
            ),
            services=ServiceStatsSchema(
                service_date=services.date,
                total_services=services.total_services,
                active_services=services.active_services,
                inactive_services=services.inactive_services,
                exceptions_on_date=services.exceptions_on_date,
            ),
        )

    return app


app = create_app()
