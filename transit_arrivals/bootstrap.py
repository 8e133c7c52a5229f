from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from transit_arrivals.adapters.messaging.in_memory_event_bus import InMemoryEventBus
from transit_arrivals.adapters.messaging.sqs_event_bus import SqsEventBus
from transit_arrivals.adapters.persistence import GtfsZipLoader, InMemoryGtfsRepository
from transit_arrivals.adapters.realtime.http_gtfs_realtime_feed_client import (
    HttpGtfsRealtimeFeedClient,
)
from transit_arrivals.app.ports.output import IEventBus, IVehicleFeedClient
from transit_arrivals.app.services.eta_service import EtaService
from transit_arrivals.app.services.scheduled_arrival_service import (
    ScheduledArrivalService,
)
from transit_arrivals.app.services.service_calendar_service import (
    ServiceCalendarService,
)
from transit_arrivals.app.services.shape_distance_service import ShapeDistanceService
from transit_arrivals.app.services.transit_query_service import TransitQueryService
from transit_arrivals.app.services.vehicle_correlation_service import (
    VehicleCorrelationService,
)
from transit_arrivals.app.services.vehicle_ingest_service import VehicleIngestService
from transit_arrivals.app.services.vehicle_position_consumer import (
    VehiclePositionConsumer,
)
from transit_arrivals.app.services.vehicle_store import VehicleStore
from transit_arrivals.config import AppConfig

logger = logging.getLogger(__name__)


def build_event_bus(config: AppConfig) -> IEventBus:
    if config.bus.backend == "sqs":
        return SqsEventBus(queue_url=config.bus.queue_url, aws=config.bus.aws)
    return InMemoryEventBus()


def build_feed_client(config: AppConfig) -> IVehicleFeedClient:
    feed = config.feed
    return HttpGtfsRealtimeFeedClient(
        base_url=feed.base_url,
        api_key=feed.api_key,
        positions_path=feed.positions_path,
        timeout_s=feed.timeout_s,
        max_retries=feed.max_retries,
        backoff_base_s=feed.backoff_base_s,
    )


@dataclass(slots=True)
class ServiceContainer:
    """Owns every long-lived object of one process.

    Handlers reach services through the container stored on app.state; there
    are no module-level singletons.
    """

    config: AppConfig
    gtfs_repository: InMemoryGtfsRepository
    vehicle_store: VehicleStore
    event_bus: IEventBus
    calendar: ServiceCalendarService
    correlation: VehicleCorrelationService
    query: TransitQueryService
    ingest: VehicleIngestService
    consumer: VehiclePositionConsumer

    _tasks: list[asyncio.Task] = field(default_factory=list, init=False, repr=False)

    def load_gtfs(self) -> None:
        loader = GtfsZipLoader(
            zip_path=self.config.gtfs_zip_path, bounds=self.config.bounds
        )
        self.gtfs_repository.load_dataset(loader.load_dataset())

    def start_background_tasks(self) -> None:
        self._tasks = [
            asyncio.create_task(self.ingest.run(), name="vehicle-ingest"),
            asyncio.create_task(self.consumer.run(), name="vehicle-consumer"),
        ]

    async def stop_background_tasks(self) -> None:
        for task in self._tasks:
            task.cancel()
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for task, result in zip(self._tasks, results):
            if isinstance(result, Exception):
                logger.error("Task %s ended with %r", task.get_name(), result)
        self._tasks = []


def build_container(
    config: AppConfig,
    *,
    gtfs_repository: InMemoryGtfsRepository | None = None,
    event_bus: IEventBus | None = None,
    feed_client: IVehicleFeedClient | None = None,
) -> ServiceContainer:
    repo = gtfs_repository or InMemoryGtfsRepository()
    bus = event_bus or build_event_bus(config)
    store = VehicleStore()

    calendar = ServiceCalendarService(gtfs_repository=repo, timezone=config.timezone)
    eta = EtaService(
        gtfs_repository=repo,
        shape_distance=ShapeDistanceService(gtfs_repository=repo),
        avg_speed_kmh=config.eta_avg_speed_kmh,
    )
    correlation = VehicleCorrelationService(
        gtfs_repository=repo, store=store, eta_service=eta
    )
    query = TransitQueryService(
        gtfs_repository=repo,
        correlation=correlation,
        scheduled_arrivals=ScheduledArrivalService(gtfs_repository=repo),
        calendar=calendar,
        timezone=config.timezone,
    )
    ingest = VehicleIngestService(
        feed_client=feed_client or build_feed_client(config),
        event_bus=bus,
        topic=config.bus.topic,
        interval_s=config.polling.interval_s,
        initial_delay_s=config.polling.initial_delay_s,
        enabled=config.polling.enabled,
    )
    consumer = VehiclePositionConsumer(
        event_bus=bus,
        store=store,
        topic=config.bus.topic,
        retention_s=config.vehicle_retention_s,
    )

    return ServiceContainer(
        config=config,
        gtfs_repository=repo,
        vehicle_store=store,
        event_bus=bus,
        calendar=calendar,
        correlation=correlation,
        query=query,
        ingest=ingest,
        consumer=consumer,
    )
