from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from transit_arrivals.app.ports.output import IVehicleFeedClient
from transit_arrivals.domain.exceptions.transit import (
    FeedDecodeError,
    FeedTransportError,
)
from transit_arrivals.domain.models import VehiclePosition

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 10 * 1024 * 1024


@dataclass(slots=True)
class HttpGtfsRealtimeFeedClient(IVehicleFeedClient):
    """Fetches a GTFS-Realtime VehiclePositions feed over HTTP.

    The request is GET {base_url}{positions_path}?apikey={api_key}. Network
    errors and 5xx responses are retried with exponential backoff
    (backoff_base_s, 2x, 4x, ...); 4xx responses and undecodable bodies fail
    immediately.
    """

    base_url: str
    api_key: str
    positions_path: str = "/v3/gtfsposition"
    timeout_s: float = 10.0
    max_retries: int = 3
    backoff_base_s: float = 2.0
    max_body_bytes: int = MAX_BODY_BYTES

    # Injection points for tests.
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)
    sleep: Callable[[float], Awaitable[None]] = field(
        default=asyncio.sleep, repr=False
    )
    clock: Callable[[], float] = field(default=time.time, repr=False)

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.positions_path}"

    async def fetch_vehicle_positions(self) -> list[VehiclePosition]:
        content = await self.fetch_feed_bytes()
        return parse_vehicle_positions(content, now_epoch=int(self.clock()))

    async def fetch_feed_bytes(self) -> bytes:
        attempt = 0
        while True:
            try:
                return await self._get_once()
            except FeedTransportError as exc:
                if not exc.retryable or attempt >= self.max_retries:
                    raise
                delay = self.backoff_base_s * (2**attempt)
                attempt += 1
                logger.warning(
                    "Feed request failed (%s); retry %d/%d in %.1fs",
                    exc,
                    attempt,
                    self.max_retries,
                    delay,
                )
                await self.sleep(delay)

    async def _get_once(self) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self.transport
            ) as client:
                async with client.stream(
                    "GET", self.url, params={"apikey": self.api_key}
                ) as resp:
                    if resp.status_code >= 400:
                        raise FeedTransportError(
                            f"Feed returned HTTP {resp.status_code}",
                            status_code=resp.status_code,
                        )
                    return await self._read_capped(resp)
        except httpx.TransportError as exc:
            raise FeedTransportError(f"Feed request failed: {exc!r}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FeedTransportError(
                f"Feed request failed: {exc!r}", retryable=False
            ) from exc

    async def _read_capped(self, resp: httpx.Response) -> bytes:
        buf = bytearray()
        async for chunk in resp.aiter_bytes():
            buf.extend(chunk)
            if len(buf) > self.max_body_bytes:
                raise FeedTransportError(
                    f"Feed body exceeds {self.max_body_bytes} bytes", retryable=False
                )
        return bytes(buf)


def parse_vehicle_positions(
    content: bytes, *, now_epoch: int
) -> list[VehiclePosition]:
    """Decode a FeedMessage into VehiclePositions.

    Only entities carrying a vehicle with a position are kept. A missing
    feed timestamp falls back to now_epoch.
    """

    feed = gtfs_realtime_pb2.FeedMessage()
    try:
        feed.ParseFromString(content)
    except DecodeError as exc:
        raise FeedDecodeError(f"Invalid GTFS-realtime payload: {exc}") from exc

    out: list[VehiclePosition] = []
    skipped = 0
    bad_fixes = 0

    for ent in feed.entity:
        if not ent.HasField("vehicle"):
            continue

        v = ent.vehicle
        if not v.HasField("position"):
            continue

        vehicle_id = v.vehicle.id if v.HasField("vehicle") else ""
        if not vehicle_id:
            # No partition key; the bus cannot order updates for it.
            skipped += 1
            continue

        trip_id = None
        route_id = None
        direction_id = None
        if v.HasField("trip"):
            trip = v.trip
            if trip.HasField("trip_id"):
                trip_id = trip.trip_id
            if trip.HasField("route_id"):
                route_id = trip.route_id
            if trip.HasField("direction_id"):
                direction_id = int(trip.direction_id)

        pos = v.position
        current_status = None
        if v.HasField("current_status"):
            current_status = gtfs_realtime_pb2.VehiclePosition.VehicleStopStatus.Name(
                v.current_status
            )

        try:
            position = VehiclePosition(
                vehicle_id=vehicle_id,
                trip_id=trip_id,
                route_id=route_id,
                direction_id=direction_id,
                lat=float(pos.latitude),
                lon=float(pos.longitude),
                bearing=float(pos.bearing) if pos.HasField("bearing") else None,
                speed=float(pos.speed) if pos.HasField("speed") else None,
                stop_id=v.stop_id if v.HasField("stop_id") else None,
                current_status=current_status,
                timestamp=int(v.timestamp) if v.HasField("timestamp") else now_epoch,
            )
        except ValueError as exc:
            logger.debug("Dropping vehicle %s: %s", vehicle_id, exc)
            bad_fixes += 1
            continue
        out.append(position)

    if skipped:
        logger.warning("Skipped %d vehicle entities without a vehicle id", skipped)
    if bad_fixes:
        logger.warning("Skipped %d vehicles with an invalid position", bad_fixes)
    logger.debug("Decoded %d vehicle positions", len(out))
    return out
