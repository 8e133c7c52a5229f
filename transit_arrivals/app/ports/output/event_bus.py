from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BusMessage:
    topic: str
    key: str
    value: bytes
    # Opaque handle used to acknowledge the message; backend specific.
    receipt: str | None = None


class IEventBus(ABC):
    """Keyed publish/subscribe port with at-least-once delivery.

    Messages sharing a key are delivered in publish order.
    """

    @abstractmethod
    def publish(self, topic: str, key: str, value: bytes) -> str:
        """Publish and return the backend message id.

        Raises BusPublishError when the broker does not accept the message.
        """

    @abstractmethod
    def consume(
        self, topic: str, *, max_messages: int = 10, wait_time_s: float = 1.0
    ) -> list[BusMessage]:
        """Return up to N messages, waiting at most wait_time_s for the first."""

    @abstractmethod
    def acknowledge(self, message: BusMessage) -> None:
        """Mark a consumed message as handled so it is not redelivered."""
