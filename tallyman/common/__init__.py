"""Shared primitives used across the Tallyman pipeline."""

from __future__ import annotations

from .errors import TimeExpressionError, TimezoneAwareRequiredError
from .time import parse_time_expression, truncate_to_second, utcnow
from .window import ActivityWindow, InvalidWindowError

__all__ = [
    "ActivityWindow",
    "InvalidWindowError",
    "TimeExpressionError",
    "TimezoneAwareRequiredError",
    "parse_time_expression",
    "truncate_to_second",
    "utcnow",
]
