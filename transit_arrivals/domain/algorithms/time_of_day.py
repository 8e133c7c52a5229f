from __future__ import annotations

import math
from datetime import time

SECONDS_PER_DAY = 24 * 3600
HALF_DAY_S = 12 * 3600


def seconds_of_day(t: time) -> int:
    return t.hour * 3600 + t.minute * 60 + t.second


def time_from_seconds(total_s: int) -> time:
    total_s %= SECONDS_PER_DAY
    hh, rem = divmod(total_s, 3600)
    mm, ss = divmod(rem, 60)
    return time(hour=hh, minute=mm, second=ss)


def add_seconds(t: time, delta_s: int) -> time:
    return time_from_seconds(seconds_of_day(t) + delta_s)


def signed_seconds_between(start: time, end: time) -> int:
    """end - start, wrapped into [-12h, +12h] so spans cross midnight naturally."""

    diff = seconds_of_day(end) - seconds_of_day(start)
    if diff > HALF_DAY_S:
        diff -= SECONDS_PER_DAY
    elif diff < -HALF_DAY_S:
        diff += SECONDS_PER_DAY
    return diff


def minutes_between(start: time, end: time) -> int:
    """Whole minutes from start to end, truncated toward zero."""

    return math.trunc(signed_seconds_between(start, end) / 60)


def in_cyclic_window(t: time, start: time, end: time) -> bool:
    """Inclusive [start, end] membership where the window may wrap past midnight."""

    if start < end:
        return start <= t <= end
    return t >= start or t <= end


def minutes_until(now: time, t: time) -> int:
    """Minutes from now until the next occurrence of t on a 24h clock."""

    minutes = math.trunc((seconds_of_day(t) - seconds_of_day(now)) / 60)
    if minutes < 0:
        minutes += 24 * 60
    return minutes
