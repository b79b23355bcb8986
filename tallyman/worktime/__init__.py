"""Calendar-aware working-time calculation."""

from __future__ import annotations

from .calculator import (
    format_working_duration,
    to_milliseconds,
    working_ms_between,
    working_time_between,
)
from .calendar import WorkingCalendar, weekday_index
from .errors import CalendarConfigError

__all__ = [
    "CalendarConfigError",
    "WorkingCalendar",
    "format_working_duration",
    "to_milliseconds",
    "weekday_index",
    "working_ms_between",
    "working_time_between",
]
