from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

VANCOUVER = ZoneInfo("America/Vancouver")

# One meter of latitude, in degrees, for R = 6371 km.
DEG_PER_M = 1.0 / 111194.92664455873


def lat_at_arc(arc_m: float, start_lat: float = 49.28) -> float:
    return start_lat + arc_m * DEG_PER_M


def fixed_clock(moment: datetime):
    """Clock for services taking `clock(tz) -> datetime`."""

    def _clock(tz: ZoneInfo) -> datetime:
        return moment.astimezone(tz)

    return _clock
