from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable

from transit_arrivals.app.ports.output import IEventBus, IVehicleFeedClient
from transit_arrivals.domain.exceptions.transit import (
    BusPublishError,
    FeedDecodeError,
    FeedTransportError,
)
from transit_arrivals.domain.models import VehiclePosition

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "vehicle-positions"


@dataclass(frozen=True, slots=True)
class PollResult:
    ok: bool
    fetched: int = 0
    published: int = 0
    failed: int = 0


@dataclass(frozen=True, slots=True)
class PollingStats:
    total_polls: int
    enabled: bool
    interval_seconds: int
    last_success: datetime | None = None


@dataclass(slots=True)
class VehicleIngestService:
    """Polls the realtime feed and republishes each vehicle on the event bus.

    Ticks run at a fixed rate. A failed cycle is logged and the next one runs
    on schedule. Ticks while polling is disabled are skipped and not counted.
    """

    feed_client: IVehicleFeedClient
    event_bus: IEventBus
    topic: str = DEFAULT_TOPIC
    interval_s: float = 30.0
    initial_delay_s: float = 5.0
    enabled: bool = True
    sleep: Callable[[float], Awaitable[None]] = field(
        default=asyncio.sleep, repr=False
    )

    _total_polls: int = field(default=0, init=False)
    _last_success: datetime | None = field(default=None, init=False)

    @property
    def total_polls(self) -> int:
        return self._total_polls

    @property
    def last_success(self) -> datetime | None:
        return self._last_success

    def set_polling_enabled(self, enabled: bool) -> None:
        logger.info("Polling %s", "enabled" if enabled else "disabled")
        self.enabled = enabled

    def stats(self) -> PollingStats:
        return PollingStats(
            total_polls=self._total_polls,
            enabled=self.enabled,
            interval_seconds=int(self.interval_s),
            last_success=self._last_success,
        )

    async def poll_once(self) -> PollResult:
        self._total_polls += 1
        cycle = self._total_polls
        logger.info("Starting polling cycle #%d", cycle)

        try:
            positions = await self.feed_client.fetch_vehicle_positions()
        except (FeedTransportError, FeedDecodeError) as exc:
            logger.error("Poll #%d failed: %s", cycle, exc)
            return PollResult(ok=False)

        if not positions:
            logger.warning("No vehicle positions found in polling cycle #%d", cycle)
            self._last_success = datetime.now(timezone.utc)
            return PollResult(ok=True)

        published, failed = await asyncio.to_thread(self._publish_all, positions)
        self._last_success = datetime.now(timezone.utc)
        logger.info(
            "Poll #%d completed: published %d of %d vehicles (%d failed)",
            cycle,
            published,
            len(positions),
            failed,
        )
        return PollResult(
            ok=True, fetched=len(positions), published=published, failed=failed
        )

    def _publish_all(self, positions: list[VehiclePosition]) -> tuple[int, int]:
        published = 0
        failed = 0
        for vehicle in positions:
            try:
                self.event_bus.publish(
                    self.topic, vehicle.vehicle_id, vehicle.to_json_bytes()
                )
            except BusPublishError as exc:
                failed += 1
                logger.error(
                    "Failed to publish vehicle %s: %s", vehicle.vehicle_id, exc
                )
                continue
            published += 1
        return published, failed

    async def run(self) -> None:
        """Poll forever at a fixed rate; cancel the task to stop."""

        logger.info(
            "Vehicle polling every %.0fs after %.0fs (topic=%s)",
            self.interval_s,
            self.initial_delay_s,
            self.topic,
        )
        await self.sleep(self.initial_delay_s)
        while True:
            started = time.monotonic()
            if self.enabled:
                try:
                    await self.poll_once()
                except Exception:
                    logger.exception(
                        "Unexpected error in polling cycle #%d", self._total_polls
                    )
            else:
                logger.debug("Polling is disabled, skipping this cycle")
            elapsed = time.monotonic() - started
            await self.sleep(max(0.0, self.interval_s - elapsed))
