from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import time
from typing import Iterable

from transit_arrivals.app.ports.output import IGtfsRepository
from transit_arrivals.domain.algorithms.time_of_day import (
    add_seconds,
    in_cyclic_window,
    minutes_between,
    minutes_until,
)
from transit_arrivals.domain.models import (
    DelayInfo,
    DelayStatus,
    ScheduleAdherence,
    ScheduledArrival,
    ScheduledBus,
    StopTime,
    VehiclePosition,
)

logger = logging.getLogger(__name__)

ON_TIME_TOLERANCE_MIN = 1
UPCOMING_WINDOW_MIN = 60
MAX_UPCOMING = 20


def classify_delay(delay_minutes: int) -> DelayStatus:
    if abs(delay_minutes) <= ON_TIME_TOLERANCE_MIN:
        return DelayStatus.ON_TIME
    if delay_minutes > 0:
        return DelayStatus.DELAYED
    return DelayStatus.EARLY


def compute_delay(scheduled: time, eta_s: int, now: time) -> DelayInfo:
    """Compare the scheduled arrival with now + eta.

    Positive minutes mean late. Differences beyond 12h are taken as crossing
    midnight.
    """

    predicted = add_seconds(now, eta_s)
    delay_minutes = minutes_between(scheduled, predicted)
    return DelayInfo(
        scheduled=scheduled,
        predicted=predicted,
        delay_minutes=delay_minutes,
        status=classify_delay(delay_minutes),
    )


def upcoming_buses(
    stop_times: Iterable[StopTime],
    now: time,
    *,
    window_min: int = UPCOMING_WINDOW_MIN,
    limit: int = MAX_UPCOMING,
) -> list[ScheduledBus]:
    """Scheduled arrivals within [now, now + window] on a 24h clock."""

    end = add_seconds(now, window_min * 60)
    buses: list[ScheduledBus] = []
    for st in stop_times:
        if not in_cyclic_window(st.arrival_time, now, end):
            continue
        eta_min = minutes_until(now, st.arrival_time)
        if 0 <= eta_min <= window_min:
            buses.append(
                ScheduledBus(scheduled_arrival=st.arrival_time, eta_minutes=eta_min)
            )

    buses.sort(key=lambda b: b.eta_minutes)
    return buses[:limit]


@dataclass(slots=True)
class ScheduledArrivalService:
    gtfs_repository: IGtfsRepository

    def scheduled_arrival(
        self, trip_id: str, stop_id: str
    ) -> ScheduledArrival | None:
        st = self.gtfs_repository.find_stop_time(trip_id, stop_id)
        if st is None:
            logger.debug("No scheduled time for trip %s at stop %s", trip_id, stop_id)
            return None
        return ScheduledArrival(
            trip_id=trip_id,
            stop_id=stop_id,
            arrival_time=st.arrival_time,
            stop_sequence=st.stop_sequence,
        )

    def delay(self, scheduled: time, eta_s: int, now: time) -> DelayInfo:
        return compute_delay(scheduled, eta_s, now)

    def adherence(
        self, vehicle: VehiclePosition, stop_id: str, eta_s: int, now: time
    ) -> ScheduleAdherence:
        if not vehicle.trip_id:
            return ScheduleAdherence()

        scheduled = self.scheduled_arrival(vehicle.trip_id, stop_id)
        if scheduled is None:
            return ScheduleAdherence()

        return ScheduleAdherence(
            scheduled=scheduled,
            delay=compute_delay(scheduled.arrival_time, eta_s, now),
        )

    def scheduled_arrivals_for_stop(
        self, stop_id: str, start: time, end: time
    ) -> list[ScheduledArrival]:
        out = [
            ScheduledArrival(
                trip_id=st.trip_id,
                stop_id=st.stop_id,
                arrival_time=st.arrival_time,
                stop_sequence=st.stop_sequence,
            )
            for st in self.gtfs_repository.find_stop_times_by_stop(stop_id)
            if in_cyclic_window(st.arrival_time, start, end)
        ]
        out.sort(key=lambda a: a.arrival_time)
        return out
