"""Business calendar used to count working time.

Usage
-----
Create a calendar with defaults (Monday to Friday, 09:00 to 17:00, UTC):

>>> calendar = WorkingCalendar()
>>> calendar.is_working_day(dt.date(2024, 1, 3))
True

Or load it once at process start from the environment:

>>> import os
>>> os.environ["TALLYMAN_WORKING_DAYS"] = "1,2,3,4"
>>> WorkingCalendar.from_env().working_weekdays
frozenset({1, 2, 3, 4})

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import os
import zoneinfo

from .errors import CalendarConfigError

_DEFAULT_START_HOUR = 9
_DEFAULT_END_HOUR = 17
# 0 = Sunday ... 6 = Saturday
_DEFAULT_WORKING_WEEKDAYS = frozenset({1, 2, 3, 4, 5})
_DEFAULT_TIMEZONE = "UTC"

_MIN_HOUR = 0
_MAX_HOUR = 23
_MIN_WEEKDAY = 0
_MAX_WEEKDAY = 6


def weekday_index(day: dt.date) -> int:
    """Return the weekday of ``day`` with 0 = Sunday and 6 = Saturday."""
    return day.isoweekday() % 7


@dc.dataclass(frozen=True, slots=True)
class WorkingCalendar:
    """Immutable description of working hours, days, and holidays.

    Attributes
    ----------
    start_hour
        First working hour of the day (0-23).
    end_hour
        Hour at which the working day ends (0-23, after ``start_hour``).
    working_weekdays
        Weekday indexes that count as working days, 0 = Sunday.
    holidays
        Calendar dates excluded even when their weekday is a working day.
    timezone
        IANA timezone whose wall clock defines days and hours.

    """

    start_hour: int = _DEFAULT_START_HOUR
    end_hour: int = _DEFAULT_END_HOUR
    working_weekdays: frozenset[int] = _DEFAULT_WORKING_WEEKDAYS
    holidays: frozenset[dt.date] = frozenset()
    timezone: str = _DEFAULT_TIMEZONE

    def __post_init__(self) -> None:
        """Validate hours, weekdays, and the timezone name."""
        hours = (("start_hour", self.start_hour), ("end_hour", self.end_hour))
        for name, value in hours:
            if not _MIN_HOUR <= value <= _MAX_HOUR:
                raise CalendarConfigError.hour_out_of_range(name, value)
        if self.start_hour >= self.end_hour:
            raise CalendarConfigError.inverted_hours(self.start_hour, self.end_hour)
        if not self.working_weekdays:
            raise CalendarConfigError.no_working_days()
        for weekday in self.working_weekdays:
            if not _MIN_WEEKDAY <= weekday <= _MAX_WEEKDAY:
                raise CalendarConfigError.weekday_out_of_range(weekday)
        try:
            zoneinfo.ZoneInfo(self.timezone)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError) as exc:
            raise CalendarConfigError.unknown_timezone(self.timezone) from exc
        object.__setattr__(self, "working_weekdays", frozenset(self.working_weekdays))
        object.__setattr__(self, "holidays", frozenset(self.holidays))

    @property
    def tzinfo(self) -> zoneinfo.ZoneInfo:
        """Return the calendar's timezone object."""
        return zoneinfo.ZoneInfo(self.timezone)

    def is_working_day(self, day: dt.date) -> bool:
        """Return True when ``day`` is a working weekday and not a holiday."""
        return weekday_index(day) in self.working_weekdays and day not in self.holidays

    def working_hours_for(self, day: dt.date) -> tuple[dt.datetime, dt.datetime]:
        """Return the UTC bounds of the working window on ``day``."""
        zone = self.tzinfo
        opens = dt.datetime.combine(day, dt.time(self.start_hour), tzinfo=zone)
        closes = dt.datetime.combine(day, dt.time(self.end_hour), tzinfo=zone)
        return (opens.astimezone(dt.UTC), closes.astimezone(dt.UTC))

    @staticmethod
    def _parse_hour(env_var: str, default: int) -> int:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            return int(raw.strip())
        except ValueError as exc:
            raise CalendarConfigError.invalid_env(env_var, raw) from exc

    @staticmethod
    def _parse_weekdays(env_var: str) -> frozenset[int]:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return _DEFAULT_WORKING_WEEKDAYS
        try:
            return frozenset(int(part) for part in raw.split(",") if part.strip())
        except ValueError as exc:
            raise CalendarConfigError.invalid_env(env_var, raw) from exc

    @staticmethod
    def _parse_holidays(env_var: str) -> frozenset[dt.date]:
        raw = os.environ.get(env_var, "")
        try:
            return frozenset(
                dt.date.fromisoformat(part.strip())
                for part in raw.split(",")
                if part.strip()
            )
        except ValueError as exc:
            raise CalendarConfigError.invalid_env(env_var, raw) from exc

    @classmethod
    def from_env(cls) -> WorkingCalendar:
        """Build a calendar from environment variables.

        Reads the following environment variables:

        - ``TALLYMAN_WORKING_START_HOUR``: first working hour (default 9)
        - ``TALLYMAN_WORKING_END_HOUR``: end of the working day (default 17)
        - ``TALLYMAN_WORKING_DAYS``: comma-separated weekdays, 0 = Sunday
          (default ``1,2,3,4,5``)
        - ``TALLYMAN_HOLIDAYS``: comma-separated ISO dates (default none)
        - ``TALLYMAN_TIMEZONE``: IANA timezone name (default ``UTC``)

        Returns
        -------
        WorkingCalendar
            A validated calendar.

        Raises
        ------
        CalendarConfigError
            If any value is unparsable or the resulting calendar is invalid.

        """
        timezone = os.environ.get("TALLYMAN_TIMEZONE", "").strip() or _DEFAULT_TIMEZONE
        return cls(
            start_hour=cls._parse_hour(
                "TALLYMAN_WORKING_START_HOUR", _DEFAULT_START_HOUR
            ),
            end_hour=cls._parse_hour("TALLYMAN_WORKING_END_HOUR", _DEFAULT_END_HOUR),
            working_weekdays=cls._parse_weekdays("TALLYMAN_WORKING_DAYS"),
            holidays=cls._parse_holidays("TALLYMAN_HOLIDAYS"),
            timezone=timezone,
        )
