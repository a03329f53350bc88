"""Minute-of-day arithmetic and timestamp parsing for trip records."""

from __future__ import annotations

import math
import numbers
from datetime import datetime
from typing import Sequence

import pandas as pd

from .errors import InvalidArgument, ParseError

MINUTES_PER_DAY = 1440
NO_FILTER = -1
DEFAULT_HALF_WIDTH = 60

# Legacy bike-share exports write US-style dates; ISO strings go through fromisoformat.
LEGACY_TIMESTAMP_FORMATS: Sequence[str] = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
)


def parse_timestamp(value: object) -> datetime:
    """
    Turn a raw timestamp token into a ``datetime``.

    Args:
        value: ``datetime`` (``pandas.Timestamp`` included) or string.
    Returns:
        The parsed wall-clock timestamp.
    Raises:
        ParseError: when the value is missing or cannot be parsed.
    """
    if isinstance(value, datetime):
        # NaT is a datetime subclass instance with no components.
        if value != value:
            raise ParseError("Timestamp is NaT")
        return value
    if value is None or (isinstance(value, float) and math.isnan(value)):
        raise ParseError("Timestamp is missing")
    if not isinstance(value, str):
        raise ParseError(f"Unsupported timestamp type {type(value).__name__}")
    text = value.strip()
    if not text:
        raise ParseError("Timestamp is empty")
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in LEGACY_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    # Older interpreters reject fractional seconds that are not 3 or 6 digits.
    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        parsed = None
    if isinstance(parsed, pd.Timestamp) and parsed is not pd.NaT:
        return parsed.to_pydatetime()
    raise ParseError(f"Invalid timestamp {text!r}")


def minute_of_day(dt: datetime) -> int:
    """Wall-clock hour*60 + minute; date and timezone are ignored."""
    return dt.hour * 60 + dt.minute


def validate_center_minute(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidArgument(f"center_minute must be an integer, got {value!r}")
    if value < NO_FILTER or value >= MINUTES_PER_DAY:
        raise InvalidArgument(
            f"center_minute must lie in [{NO_FILTER}, {MINUTES_PER_DAY - 1}], got {value}"
        )
    return int(value)


def validate_half_width(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidArgument(f"half_width must be an integer, got {value!r}")
    if value < 0:
        raise InvalidArgument(f"half_width must be non-negative, got {value}")
    return int(value)


def format_minute(minute: int) -> str:
    if minute == NO_FILTER:
        return "any time"
    hours, mins = divmod(int(minute), 60)
    return f"{hours:02d}:{mins:02d}"


__all__ = [
    "DEFAULT_HALF_WIDTH",
    "LEGACY_TIMESTAMP_FORMATS",
    "MINUTES_PER_DAY",
    "NO_FILTER",
    "format_minute",
    "minute_of_day",
    "parse_timestamp",
    "validate_center_minute",
    "validate_half_width",
]
