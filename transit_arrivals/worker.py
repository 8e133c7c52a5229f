from __future__ import annotations

import asyncio
import logging
import os

from transit_arrivals.app.services.vehicle_ingest_service import VehicleIngestService
from transit_arrivals.bootstrap import build_event_bus, build_feed_client
from transit_arrivals.config import AppConfig, configure_logging

logger = logging.getLogger(__name__)


async def run_ingest(config: AppConfig, *, loop: bool = True) -> None:
    """Ingest-only process: feed in, event bus out.

    Meant to run next to an API process with BUS_BACKEND=sqs; with the memory
    backend nothing would read what it publishes.
    """

    if config.bus.backend == "memory":
        logger.warning("Worker is publishing to the in-memory bus")

    ingest = VehicleIngestService(
        feed_client=build_feed_client(config),
        event_bus=build_event_bus(config),
        topic=config.bus.topic,
        interval_s=config.polling.interval_s,
        initial_delay_s=config.polling.initial_delay_s,
        enabled=config.polling.enabled,
    )
    if not loop:
        result = await ingest.poll_once()
        logger.info("Single poll finished: %s", result)
        return
    await ingest.run()


def main() -> None:
    config = AppConfig.from_env()
    configure_logging(config.log_level)

    loop = os.getenv("WORKER_LOOP", "1").strip().lower() not in {"0", "false", "no"}
    try:
        asyncio.run(run_ingest(config, loop=loop))
    except KeyboardInterrupt:
        logger.info("Worker stopped")


if __name__ == "__main__":
    main()
