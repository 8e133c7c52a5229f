from __future__ import annotations

from abc import ABC, abstractmethod

from transit_arrivals.domain.models import VehiclePosition


class IVehicleFeedClient(ABC):
    """Port for fetching vehicle positions from a GTFS-realtime feed."""

    @abstractmethod
    async def fetch_vehicle_positions(self) -> list[VehiclePosition]:
        """Fetch and decode one snapshot of the feed.

        Raises FeedTransportError or FeedDecodeError.
        """
