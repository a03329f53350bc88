"""Circular time-of-day window over minute buckets.

A window centered on ``center_minute`` covers the half-open range
``[center - half_width, center + half_width)`` taken modulo 1440, so a
window near midnight continues from minute 1439 into minute 0. Each covered
minute is visited exactly once. ``NO_FILTER`` (-1) selects the whole day.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from .domain_types import TripEvent
from .minute_clock import (
    DEFAULT_HALF_WIDTH,
    MINUTES_PER_DAY,
    NO_FILTER,
    validate_center_minute,
    validate_half_width,
)

Segment = Tuple[int, int]


def window_segments(center_minute: int, half_width: int = DEFAULT_HALF_WIDTH) -> List[Segment]:
    """Return the ``[start, stop)`` bucket ranges covered by a window, in order.

    At most two segments come back: one for an ordinary window and two when
    the window wraps past midnight (late segment first).
    """
    center = validate_center_minute(center_minute)
    width = validate_half_width(half_width)
    if center == NO_FILTER or 2 * width >= MINUTES_PER_DAY:
        return [(0, MINUTES_PER_DAY)]
    if width == 0:
        return []
    low = (center - width + MINUTES_PER_DAY) % MINUTES_PER_DAY
    high = (center + width) % MINUTES_PER_DAY
    if low <= high:
        return [(low, high)]
    segments = [(low, MINUTES_PER_DAY)]
    if high > 0:
        segments.append((0, high))
    return segments


def window_minutes(center_minute: int, half_width: int = DEFAULT_HALF_WIDTH) -> List[int]:
    """Minute indices covered by the window, in selection order."""
    minutes: List[int] = []
    for start, stop in window_segments(center_minute, half_width):
        minutes.extend(range(start, stop))
    return minutes


def select(
    buckets: Sequence[Sequence[TripEvent]],
    center_minute: int,
    half_width: int = DEFAULT_HALF_WIDTH,
) -> List[TripEvent]:
    """Concatenate the buckets that fall inside the circular window.

    ``buckets`` is one side (departures or arrivals) of a
    :class:`~bikeflow.core.bucketer.MinuteBucketSet`. The input is never
    modified.
    """
    segments = window_segments(center_minute, half_width)
    if len(buckets) != MINUTES_PER_DAY:
        raise ValueError(f"Expected {MINUTES_PER_DAY} buckets, got {len(buckets)}")
    selected: List[TripEvent] = []
    for start, stop in segments:
        for minute in range(start, stop):
            selected.extend(buckets[minute])
    return selected


__all__ = ["select", "window_minutes", "window_segments"]
