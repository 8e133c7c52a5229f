from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from transit_arrivals.app.ports.output import BusMessage, IEventBus
from transit_arrivals.app.services.vehicle_store import VehicleStore
from transit_arrivals.domain.exceptions.transit import BusDecodeError
from transit_arrivals.domain.models import VehiclePosition

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_S = 24 * 60 * 60
LOG_EVERY_N_MESSAGES = 25


def decode_message(message: BusMessage) -> VehiclePosition:
    try:
        return VehiclePosition.from_json_bytes(message.value)
    except (KeyError, TypeError, ValueError) as exc:
        raise BusDecodeError(
            f"Bad vehicle position (key={message.key!r}): {exc!r}"
        ) from exc


@dataclass(slots=True)
class VehiclePositionConsumer:
    """Moves vehicle positions from the bus into the VehicleStore.

    Messages are acknowledged after they are handled, including the ones that
    fail to decode, so a poison message is never redelivered.
    """

    event_bus: IEventBus
    store: VehicleStore
    topic: str = "vehicle-positions"
    batch_size: int = 10
    wait_time_s: float = 1.0
    retention_s: int = DEFAULT_RETENTION_S
    evict_every_s: float = 60.0
    error_backoff_s: float = 5.0
    clock: Callable[[], float] = field(default=time.time, repr=False)

    _message_count: int = field(default=0, init=False)
    _decode_failures: int = field(default=0, init=False)
    _last_eviction: float = field(default=0.0, init=False)

    @property
    def message_count(self) -> int:
        return self._message_count

    @property
    def decode_failures(self) -> int:
        return self._decode_failures

    def handle(self, message: BusMessage) -> bool:
        self._message_count += 1
        try:
            vehicle = decode_message(message)
        except BusDecodeError as exc:
            self._decode_failures += 1
            logger.error("Error processing message #%d: %s", self._message_count, exc)
            return False

        self.store.put(vehicle)
        if self._message_count % LOG_EVERY_N_MESSAGES == 0:
            logger.info(
                "Consumed message #%d: vehicle %s on route %s (%d stored)",
                self._message_count,
                vehicle.vehicle_id,
                vehicle.route_id,
                len(self.store),
            )
        return True

    def drain_once(self) -> int:
        """Consume one batch; return how many messages were stored."""

        messages = self.event_bus.consume(
            self.topic, max_messages=self.batch_size, wait_time_s=self.wait_time_s
        )
        stored = 0
        for message in messages:
            if self.handle(message):
                stored += 1
            self.event_bus.acknowledge(message)

        self.maybe_evict()
        return stored

    def maybe_evict(self) -> int:
        now = self.clock()
        if now - self._last_eviction < self.evict_every_s:
            return 0
        self._last_eviction = now
        return self.store.evict_older_than(int(now) - self.retention_s)

    async def run(self) -> None:
        """Drain forever; cancel the task to stop."""

        logger.info("Consuming vehicle positions from %s", self.topic)
        while True:
            try:
                await asyncio.to_thread(self.drain_once)
            except Exception:
                # Broker outages must not kill the consumer task.
                logger.exception("Consumer drain failed; retrying")
                await asyncio.sleep(self.error_backoff_s)
