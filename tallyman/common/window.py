"""Half-open time windows used to scope a sync run."""

from __future__ import annotations

import dataclasses
import datetime as dt

from .time import ensure_aware, parse_time_expression, utcnow


class InvalidWindowError(ValueError):
    """Raised when a window's end precedes its start."""

    def __init__(self, start: dt.datetime, end: dt.datetime) -> None:
        """Describe the inverted bounds."""
        super().__init__(
            f"window end {end.isoformat()} precedes start {start.isoformat()}"
        )


@dataclasses.dataclass(frozen=True, slots=True)
class ActivityWindow:
    """Time range ``[start, end)`` over which a sync operates.

    An instant equal to ``end`` belongs to the next window, so chaining
    windows back to back (for example a cron every 15 minutes) never emits
    the same event twice.
    """

    start: dt.datetime
    end: dt.datetime

    def __post_init__(self) -> None:
        """Reject naive or inverted bounds."""
        ensure_aware(self.start, "window start")
        ensure_aware(self.end, "window end")
        if self.end < self.start:
            raise InvalidWindowError(self.start, self.end)

    def contains(self, instant: dt.datetime) -> bool:
        """Return True when ``instant`` falls inside ``[start, end)``."""
        return self.start <= instant < self.end

    @classmethod
    def from_expressions(
        cls,
        start: str,
        end: str = "now",
        *,
        now: dt.datetime | None = None,
    ) -> ActivityWindow:
        """Build a window from phrases such as ``"15 minutes ago"``."""
        reference = now or utcnow()
        return cls(
            start=parse_time_expression(start, now=reference),
            end=parse_time_expression(end, now=reference),
        )
