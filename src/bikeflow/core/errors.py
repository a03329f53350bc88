"""Exceptions raised by the traffic engine."""

from __future__ import annotations


class ParseError(ValueError):
    """A trip record could not be turned into a :class:`TripEvent`."""


class InvalidArgument(ValueError):
    """A query argument is outside its accepted domain."""


__all__ = ["InvalidArgument", "ParseError"]
