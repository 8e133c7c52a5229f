from __future__ import annotations

import itertools
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

from transit_arrivals.app.ports.output import BusMessage, IEventBus

DEFAULT_VISIBILITY_TIMEOUT_S = 30.0


@dataclass(slots=True)
class InMemoryEventBus(IEventBus):
    """Single-process bus: one FIFO per topic.

    Used for local runs and tests. A consumed message stays in flight until
    acknowledged. Like an SQS visibility timeout, a message left unacknowledged
    for visibility_timeout_s goes back to the head of its topic and is
    delivered again.
    """

    visibility_timeout_s: float = DEFAULT_VISIBILITY_TIMEOUT_S
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    _queues: dict[str, deque[BusMessage]] = field(default_factory=dict, init=False)
    # receipt -> (message, redelivery deadline)
    _in_flight: dict[str, tuple[BusMessage, float]] = field(
        default_factory=dict, init=False
    )
    _cond: threading.Condition = field(
        default_factory=threading.Condition, init=False, repr=False
    )
    _ids: itertools.count = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )

    def publish(self, topic: str, key: str, value: bytes) -> str:
        with self._cond:
            message_id = str(next(self._ids))
            self._queues.setdefault(topic, deque()).append(
                BusMessage(topic=topic, key=key, value=value, receipt=message_id)
            )
            self._cond.notify_all()
        return message_id

    def consume(
        self, topic: str, *, max_messages: int = 10, wait_time_s: float = 1.0
    ) -> list[BusMessage]:
        deadline = time.monotonic() + max(0.0, wait_time_s)
        with self._cond:
            queue = self._queues.setdefault(topic, deque())
            self._requeue_expired(topic, queue)
            while not queue:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return []
                self._cond.wait(remaining)
                self._requeue_expired(topic, queue)

            visible_until = self.clock() + self.visibility_timeout_s
            out: list[BusMessage] = []
            while queue and len(out) < max(1, max_messages):
                msg = queue.popleft()
                if msg.receipt:
                    self._in_flight[msg.receipt] = (msg, visible_until)
                out.append(msg)
            return out

    def _requeue_expired(self, topic: str, queue: deque[BusMessage]) -> None:
        now = self.clock()
        expired = [
            msg
            for msg, visible_until in self._in_flight.values()
            if msg.topic == topic and visible_until <= now
        ]
        if not expired:
            return
        # Oldest first, ahead of anything published since.
        expired.sort(key=lambda m: int(m.receipt or 0))
        for msg in expired:
            del self._in_flight[msg.receipt]
        queue.extendleft(reversed(expired))

    def acknowledge(self, message: BusMessage) -> None:
        if not message.receipt:
            return
        with self._cond:
            self._in_flight.pop(message.receipt, None)

    def pending(self, topic: str) -> int:
        with self._cond:
            return len(self._queues.get(topic, ()))

    def in_flight(self) -> int:
        with self._cond:
            return len(self._in_flight)
