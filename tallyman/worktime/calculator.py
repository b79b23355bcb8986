"""Working-time arithmetic over a business calendar."""

from __future__ import annotations

import datetime as dt
import typing as typ

from tallyman.common.time import ensure_aware

if typ.TYPE_CHECKING:
    from .calendar import WorkingCalendar

_ZERO = dt.timedelta(0)
_ONE_DAY = dt.timedelta(days=1)
_MS_PER_HOUR = 3_600_000
_MS_PER_MINUTE = 60_000


def working_time_between(
    start: dt.datetime, end: dt.datetime, calendar: WorkingCalendar
) -> dt.timedelta:
    """Return the working time elapsed between two instants.

    The walk covers every calendar day (in the calendar's timezone) from the
    day containing ``start`` to the day containing ``end`` inclusive. Working
    days contribute the overlap between ``[start, end]`` and their
    ``[start_hour, end_hour]`` window; weekends and holidays contribute
    nothing however much of the literal interval they span.

    Parameters
    ----------
    start, end : datetime
        Timezone-aware bounds of the interval.
    calendar : WorkingCalendar
        Working hours, weekdays, and holidays to apply.

    Returns
    -------
    timedelta
        Non-negative working duration; zero when ``end <= start``.

    Raises
    ------
    TimezoneAwareRequiredError
        If either bound is naive.

    """
    ensure_aware(start, "start")
    ensure_aware(end, "end")
    if end <= start:
        return _ZERO

    zone = calendar.tzinfo
    start_utc = start.astimezone(dt.UTC)
    end_utc = end.astimezone(dt.UTC)
    day = start.astimezone(zone).date()
    last_day = end.astimezone(zone).date()

    total = _ZERO
    while day <= last_day:
        if calendar.is_working_day(day):
            opens, closes = calendar.working_hours_for(day)
            overlap_start = max(start_utc, opens)
            overlap_end = min(end_utc, closes)
            if overlap_start < overlap_end:
                total += overlap_end - overlap_start
        day += _ONE_DAY
    return total


def working_ms_between(
    start: dt.datetime, end: dt.datetime, calendar: WorkingCalendar
) -> int:
    """Return :func:`working_time_between` as whole milliseconds."""
    return to_milliseconds(working_time_between(start, end, calendar))


def to_milliseconds(duration: dt.timedelta) -> int:
    """Convert a duration to whole milliseconds, truncating sub-millisecond parts."""
    return duration // dt.timedelta(milliseconds=1)


def format_working_duration(ms: int) -> str:
    """Render milliseconds as ``"2h 5m"``, ``"3h"``, or ``"45m"``."""
    hours, remainder = divmod(max(ms, 0), _MS_PER_HOUR)
    minutes = remainder // _MS_PER_MINUTE
    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"
