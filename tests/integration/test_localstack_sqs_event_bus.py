from __future__ import annotations

import asyncio
import time
from uuid import uuid4

import pytest

from transit_arrivals.adapters.aws import sqs_client
from transit_arrivals.adapters.messaging.sqs_event_bus import SqsEventBus
from transit_arrivals.app.ports.output import BusMessage
from transit_arrivals.app.services.vehicle_ingest_service import VehicleIngestService
from transit_arrivals.app.services.vehicle_position_consumer import (
    VehiclePositionConsumer,
)
from transit_arrivals.app.services.vehicle_store import VehicleStore
from transit_arrivals.domain.models import VehiclePosition


def _vehicle(vehicle_id: str, timestamp: int) -> VehiclePosition:
    return VehiclePosition(
        vehicle_id=vehicle_id,
        lat=49.28,
        lon=-123.12,
        timestamp=timestamp,
        route_id="6635",
        direction_id=0,
    )


def _receive_all(bus: SqsEventBus, topic: str, expected: int) -> list[BusMessage]:
    # Retry a bit to account for async delivery.
    deadline = time.time() + 10.0
    received: list[BusMessage] = []
    while time.time() < deadline and len(received) < expected:
        batch = bus.consume(topic, max_messages=10, wait_time_s=1)
        for message in batch:
            received.append(message)
            bus.acknowledge(message)
        if not batch:
            time.sleep(0.1)
    return received


@pytest.mark.integration
def test_fifo_queue_keeps_per_vehicle_order(
    require_localstack: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("SQS_QUEUE_URL", raising=False)
    name = f"transit-arrivals-{uuid4().hex[:8]}.fifo"
    queue_url = sqs_client().create_queue(
        QueueName=name, Attributes={"FifoQueue": "true"}
    )["QueueUrl"]
    bus = SqsEventBus(queue_url=queue_url)

    for ts in (100, 130, 160):
        assert bus.publish(name, "V1", _vehicle("V1", ts).to_json_bytes())
    bus.publish(name, "V2", _vehicle("V2", 100).to_json_bytes())

    received = _receive_all(bus, name, expected=4)

    v1 = [
        VehiclePosition.from_json_bytes(m.value).timestamp
        for m in received
        if m.key == "V1"
    ]
    assert v1 == [100, 130, 160]
    assert {m.key for m in received} == {"V1", "V2"}
    assert bus.consume(name, wait_time_s=0) == []


@pytest.mark.integration
def test_queue_is_resolved_by_topic_name(
    require_localstack: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("SQS_QUEUE_URL", raising=False)
    topic = f"transit-arrivals-{uuid4().hex[:8]}"
    sqs_client().create_queue(QueueName=topic)
    bus = SqsEventBus()

    bus.publish(topic, "V7", _vehicle("V7", 100).to_json_bytes())
    (message,) = _receive_all(bus, topic, expected=1)

    assert message.key == "V7"
    assert VehiclePosition.from_json_bytes(message.value) == _vehicle("V7", 100)


@pytest.mark.integration
def test_missing_queue_consumes_nothing(
    require_localstack: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("SQS_QUEUE_URL", raising=False)
    client = sqs_client()
    queue_url = client.create_queue(QueueName=f"gone-{uuid4().hex[:8]}")["QueueUrl"]
    client.delete_queue(QueueUrl=queue_url)

    assert SqsEventBus(queue_url=queue_url).consume("gone", wait_time_s=0) == []


@pytest.mark.integration
def test_ingest_to_store_through_sqs(
    require_localstack: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("SQS_QUEUE_URL", raising=False)

    class _FeedClient:
        async def fetch_vehicle_positions(self) -> list[VehiclePosition]:
            return [_vehicle("V1", 100), _vehicle("V2", 100)]

    name = f"transit-arrivals-{uuid4().hex[:8]}.fifo"
    queue_url = sqs_client().create_queue(
        QueueName=name, Attributes={"FifoQueue": "true"}
    )["QueueUrl"]
    bus = SqsEventBus(queue_url=queue_url)
    store = VehicleStore()

    result = asyncio.run(
        VehicleIngestService(
            feed_client=_FeedClient(), event_bus=bus, topic=name
        ).poll_once()
    )
    consumer = VehiclePositionConsumer(
        event_bus=bus, store=store, topic=name, clock=lambda: 200.0
    )
    deadline = time.time() + 10.0
    while time.time() < deadline and len(store) < 2:
        consumer.drain_once()

    assert result.published == 2
    assert {v.vehicle_id for v in store.all()} == {"V1", "V2"}
