"""Working calendar configuration errors."""

from __future__ import annotations


class CalendarConfigError(ValueError):
    """Raised when a working calendar cannot produce meaningful durations.

    Misconfigured calendars are fatal at startup: every duration computed
    afterwards would be wrong, so callers should fail before processing any
    window.
    """

    @classmethod
    def hour_out_of_range(cls, name: str, value: int) -> CalendarConfigError:
        """Return an error for hours outside 0-23."""
        return cls(f"{name} must be between 0 and 23, got {value}")

    @classmethod
    def inverted_hours(cls, start_hour: int, end_hour: int) -> CalendarConfigError:
        """Return an error when the working day ends before it starts."""
        return cls(
            f"start_hour ({start_hour}) must be earlier than end_hour ({end_hour})"
        )

    @classmethod
    def no_working_days(cls) -> CalendarConfigError:
        """Return an error when no weekday is marked as working."""
        return cls("working_weekdays must contain at least one day")

    @classmethod
    def weekday_out_of_range(cls, value: int) -> CalendarConfigError:
        """Return an error for weekdays outside 0 (Sunday) to 6 (Saturday)."""
        return cls(f"working weekday must be between 0 and 6, got {value}")

    @classmethod
    def unknown_timezone(cls, name: str) -> CalendarConfigError:
        """Return an error for timezone names missing from the tz database."""
        return cls(f"unknown timezone: {name!r}")

    @classmethod
    def invalid_env(cls, env_var: str, raw: str) -> CalendarConfigError:
        """Return an error for unparsable environment values."""
        return cls(f"{env_var} has an invalid value: {raw!r}")
