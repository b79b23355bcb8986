"""Lookup from raw event kinds to history categories and values.

Each recognised kind maps to a category, a human action label, and a rule for
extracting the associated value from the event payload. Kinds absent from the
table are not timeline transitions: ``commented``, ``reviewed`` and
``committed`` are routed to the activity inputs instead, and anything else is
unknown.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from .models import EventKind, HistoryCategory

if typ.TYPE_CHECKING:
    from .models import RawEvent


@dataclasses.dataclass(frozen=True, slots=True)
class KindSpec:
    """How one raw event kind becomes a history item."""

    category: HistoryCategory
    action: str
    value_key: str | None = None
    constant_value: str | None = None
    previous_key: str | None = None

    def value_for(self, event: RawEvent) -> str | None:
        """Extract the item's value, or None when the payload lacks it."""
        if self.value_key is None:
            return self.constant_value
        return _text(event.payload.get(self.value_key))

    def previous_for(self, event: RawEvent) -> str | None:
        """Extract the value held before this event, when the source sent it."""
        if self.previous_key is None:
            return None
        return _text(event.payload.get(self.previous_key))


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


HISTORY_KINDS: dict[EventKind, KindSpec] = {
    EventKind.STATUS_CHANGED: KindSpec(
        HistoryCategory.STATUS,
        "moved",
        value_key="status",
        previous_key="previous_status",
    ),
    EventKind.LABELED: KindSpec(HistoryCategory.LABEL, "labeled", value_key="label"),
    EventKind.UNLABELED: KindSpec(
        HistoryCategory.LABEL, "unlabeled", value_key="label"
    ),
    EventKind.ASSIGNED: KindSpec(
        HistoryCategory.ASSIGNMENT, "assigned", value_key="assignee"
    ),
    EventKind.UNASSIGNED: KindSpec(
        HistoryCategory.ASSIGNMENT, "unassigned", value_key="assignee"
    ),
    EventKind.CLOSED: KindSpec(
        HistoryCategory.STATE, "closed", constant_value="closed"
    ),
    EventKind.REOPENED: KindSpec(
        HistoryCategory.STATE, "reopened", constant_value="open"
    ),
    EventKind.OPENED: KindSpec(HistoryCategory.STATE, "opened", constant_value="open"),
}

ACTIVITY_KINDS: frozenset[EventKind] = frozenset(
    {EventKind.COMMENTED, EventKind.REVIEWED, EventKind.COMMITTED}
)


def resolve_kind(kind: str) -> EventKind | None:
    """Return the recognised kind for ``kind``, or None when unknown."""
    try:
        return EventKind(kind.strip().lower())
    except (ValueError, AttributeError):
        return None
