"""Common time utilities."""

from __future__ import annotations

import datetime as dt
import re

from .errors import TimeExpressionError, TimezoneAwareRequiredError

_RELATIVE_PATTERN = re.compile(
    r"^(?P<amount>\d+)\s+(?P<unit>minute|hour|day|week)s?\s+ago$",
    re.IGNORECASE,
)

_UNIT_DELTAS: dict[str, dt.timedelta] = {
    "minute": dt.timedelta(minutes=1),
    "hour": dt.timedelta(hours=1),
    "day": dt.timedelta(days=1),
    "week": dt.timedelta(weeks=1),
}


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def ensure_aware(value: dt.datetime, name: str) -> dt.datetime:
    """Return ``value`` unchanged, raising when it carries no tzinfo."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise TimezoneAwareRequiredError.for_bound(name)
    return value


def to_utc(value: dt.datetime) -> dt.datetime:
    """Convert an aware datetime to UTC."""
    return ensure_aware(value, "datetime").astimezone(dt.UTC)


def truncate_to_second(value: dt.datetime) -> dt.datetime:
    """Convert ``value`` to UTC and drop sub-second precision."""
    return to_utc(value).replace(microsecond=0)


def isoformat_seconds(value: dt.datetime) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""
    return truncate_to_second(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_time_expression(
    expression: str, *, now: dt.datetime | None = None
) -> dt.datetime:
    """Resolve an absolute or relative time phrase to an aware UTC datetime.

    Supported forms are ``now``, ``N minutes ago``, ``N hours ago``,
    ``N days ago``, ``N weeks ago``, ISO-8601 dates (midnight UTC) and
    ISO-8601 datetimes. Datetimes without an offset are read as UTC.

    Parameters
    ----------
    expression : str
        The phrase to resolve.
    now : datetime | None, optional
        Reference instant for relative phrases; defaults to :func:`utcnow`.

    Returns
    -------
    datetime
        The resolved instant in UTC.

    Raises
    ------
    TimeExpressionError
        When the phrase matches none of the supported forms.

    """
    text = expression.strip()
    reference = to_utc(now) if now is not None else utcnow()
    if not text:
        raise TimeExpressionError(expression)
    if text.lower() == "now":
        return reference

    match = _RELATIVE_PATTERN.match(text)
    if match is not None:
        unit = _UNIT_DELTAS[match.group("unit").lower()]
        return reference - unit * int(match.group("amount"))

    try:
        parsed = dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise TimeExpressionError(expression) from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)
