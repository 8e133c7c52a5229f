from .event_bus import BusMessage, IEventBus
from .gtfs_repository import IGtfsRepository
from .vehicle_feed_client import IVehicleFeedClient

__all__ = [
    "BusMessage",
    "IEventBus",
    "IGtfsRepository",
    "IVehicleFeedClient",
]
