"""Reconstruct ordered history and status intervals from raw events.

The processor is pure: it performs no I/O and shares no mutable state, so
entities can be processed independently and in any order. Individual events
that are malformed or of an unknown kind are dropped and counted rather than
raised, which keeps one bad event from hiding its neighbours.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import typing as typ

from tallyman.worktime import working_time_between

from .kinds import ACTIVITY_KINDS, HISTORY_KINDS, resolve_kind
from .models import (
    INITIAL_STATUS,
    CommentInput,
    CommitInput,
    DroppedEventCounts,
    EntityType,
    EventKind,
    HistoryCategory,
    HistoryItem,
    ReviewInput,
    StatusInterval,
    TimelineResult,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from tallyman.worktime import WorkingCalendar

    from .models import RawEvent, Subject

_REVIEW_STATE_ALIASES = {"request_changes": "changes_requested"}


def normalise_review_state(state: str) -> str:
    """Lower-case a review state and fold aliases onto canonical names."""
    lowered = state.strip().lower()
    return _REVIEW_STATE_ALIASES.get(lowered, lowered)


def _is_well_formed(event: RawEvent, entity_id: str) -> bool:
    if event.entity_id != entity_id:
        return False
    if not isinstance(event.actor, str) or not event.actor.strip():
        return False
    when = event.occurred_at
    return isinstance(when, dt.datetime) and when.utcoffset() is not None


def _optional_text(payload: dict[str, typ.Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    return str(value)


def _int_field(payload: dict[str, typ.Any], key: str) -> int:
    value = payload.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


@dataclasses.dataclass(slots=True)
class _Collected:
    history: list[HistoryItem] = dataclasses.field(default_factory=list)
    comments: list[CommentInput] = dataclasses.field(default_factory=list)
    reviews: list[ReviewInput] = dataclasses.field(default_factory=list)
    commits: list[CommitInput] = dataclasses.field(default_factory=list)
    unknown_kind: int = 0
    malformed: int = 0


def _collect_activity(
    kind: EventKind, event: RawEvent, actor: str, when: dt.datetime, out: _Collected
) -> bool:
    """Append a comment, review, or commit input; return False if malformed.

    Reviews are only meaningful on pull requests.
    """
    payload = event.payload
    if kind is EventKind.COMMENTED:
        body = payload.get("body", "")
        if not isinstance(body, str):
            return False
        out.comments.append(
            CommentInput(
                actor=actor,
                when=when,
                body=body,
                comment_id=_optional_text(payload, "comment_id"),
            )
        )
        return True
    if kind is EventKind.REVIEWED:
        if event.subject.entity_type is not EntityType.PULL_REQUEST:
            return False
        state = payload.get("state")
        if not isinstance(state, str) or not state.strip():
            return False
        body = payload.get("body")
        out.reviews.append(
            ReviewInput(
                actor=actor,
                when=when,
                state=normalise_review_state(state),
                body=body if isinstance(body, str) else "",
                review_id=_optional_text(payload, "review_id"),
            )
        )
        return True
    commit_hash = payload.get("hash")
    if not isinstance(commit_hash, str) or not commit_hash.strip():
        return False
    message = payload.get("message")
    out.commits.append(
        CommitInput(
            actor=actor,
            when=when,
            hash=commit_hash.strip(),
            message=message if isinstance(message, str) else "",
            email=_optional_text(payload, "email"),
            branch=_optional_text(payload, "branch"),
            lines_added=_int_field(payload, "lines_added"),
            lines_removed=_int_field(payload, "lines_removed"),
            is_fork=bool(payload.get("is_fork", False)),
        )
    )
    return True


def _collect(entity_id: str, raw_events: cabc.Iterable[RawEvent]) -> _Collected:
    out = _Collected()
    valid: list[RawEvent] = []
    for event in raw_events:
        if _is_well_formed(event, entity_id):
            valid.append(event)
        else:
            out.malformed += 1

    # list.sort is stable, so arrival order breaks timestamp ties.
    valid.sort(key=lambda event: typ.cast("dt.datetime", event.occurred_at))

    for event in valid:
        kind = resolve_kind(event.kind)
        if kind is None:
            out.unknown_kind += 1
            continue
        actor = typ.cast("str", event.actor).strip()
        when = typ.cast("dt.datetime", event.occurred_at)
        if kind in ACTIVITY_KINDS:
            if not _collect_activity(kind, event, actor, when, out):
                out.malformed += 1
            continue
        spec = HISTORY_KINDS[kind]
        value = spec.value_for(event)
        if value is None:
            out.malformed += 1
            continue
        out.history.append(
            HistoryItem(
                category=spec.category,
                action=spec.action,
                value=value,
                actor=actor,
                when=when,
                previous_value=spec.previous_for(event),
            )
        )
    return out


def _clamp(
    when: dt.datetime, lower: dt.datetime, upper: dt.datetime
) -> dt.datetime:
    """Clamp ``when`` into ``[lower, upper]``; ``lower`` wins if they cross."""
    return max(lower, min(when, upper))


def build_status_intervals(
    history: cabc.Sequence[HistoryItem],
    opened_at: dt.datetime,
    as_of: dt.datetime,
    calendar: WorkingCalendar,
) -> tuple[list[StatusInterval], list[HistoryItem]]:
    """Partition ``[opened_at, as_of]`` into contiguous status intervals.

    The status before the first transition is the transition's
    ``previous_value`` when the source supplied one, otherwise
    :data:`INITIAL_STATUS`. Transition times are clamped into the
    partitioned range so that intervals never overlap and their working
    durations sum to ``working_time_between(opened_at, as_of)``.

    Returns
    -------
    tuple[list[StatusInterval], list[HistoryItem]]
        The intervals in chronological order, and ``history`` with each
        status item's ``working_duration_ms`` set to the working time spent
        in the status it left.

    """
    transitions = [
        index
        for index, item in enumerate(history)
        if item.category is HistoryCategory.STATUS
    ]
    first_previous = history[transitions[0]].previous_value if transitions else None
    status = first_previous or INITIAL_STATUS
    boundary = opened_at
    intervals: list[StatusInterval] = []
    annotated = list(history)

    for index in transitions:
        item = history[index]
        ended_at = _clamp(item.when, boundary, as_of)
        duration = working_time_between(boundary, ended_at, calendar)
        interval = StatusInterval(
            status=status,
            started_at=boundary,
            ended_at=ended_at,
            working_duration=duration,
        )
        intervals.append(interval)
        annotated[index] = dataclasses.replace(
            item, working_duration_ms=interval.working_duration_ms
        )
        boundary = ended_at
        status = typ.cast("str", item.value)

    final_end = max(boundary, as_of)
    intervals.append(
        StatusInterval(
            status=status,
            started_at=boundary,
            ended_at=final_end,
            working_duration=working_time_between(boundary, final_end, calendar),
            is_open=True,
        )
    )
    return (intervals, annotated)


def process_timeline(
    entity_id: str,
    raw_events: cabc.Iterable[RawEvent],
    opened_at: dt.datetime,
    as_of: dt.datetime,
    calendar: WorkingCalendar,
) -> TimelineResult:
    """Turn one entity's unordered raw events into an ordered timeline."""
    collected = _collect(entity_id, raw_events)
    intervals, history = build_status_intervals(
        collected.history, opened_at, as_of, calendar
    )
    return TimelineResult(
        entity_id=entity_id,
        history=tuple(history),
        intervals=tuple(intervals),
        comments=tuple(collected.comments),
        reviews=tuple(collected.reviews),
        commits=tuple(collected.commits),
        dropped=DroppedEventCounts(
            unknown_kind=collected.unknown_kind,
            malformed=collected.malformed,
        ),
    )


def resolve_opened_at(
    subject: Subject, raw_events: cabc.Iterable[RawEvent]
) -> dt.datetime | None:
    """Return when the entity opened.

    Prefers the subject's own ``opened_at``, then the earliest ``opened``
    event, then the earliest well-formed event of any kind.
    """
    if subject.opened_at is not None:
        return subject.opened_at
    earliest: dt.datetime | None = None
    earliest_opened: dt.datetime | None = None
    for event in raw_events:
        when = event.occurred_at
        if not isinstance(when, dt.datetime) or when.utcoffset() is None:
            continue
        if earliest is None or when < earliest:
            earliest = when
        if resolve_kind(event.kind) is EventKind.OPENED and (
            earliest_opened is None or when < earliest_opened
        ):
            earliest_opened = when
    return earliest_opened or earliest


class TimelineEventProcessor:
    """Timeline processing bound to one working calendar.

    The calendar is fixed at construction so callers cannot mix calendars
    within a run.
    """

    def __init__(self, calendar: WorkingCalendar) -> None:
        """Store the calendar used for every duration."""
        self._calendar = calendar

    @property
    def calendar(self) -> WorkingCalendar:
        """Return the calendar applied to durations."""
        return self._calendar

    def process(
        self,
        entity_id: str,
        raw_events: cabc.Iterable[RawEvent],
        opened_at: dt.datetime,
        as_of: dt.datetime,
    ) -> TimelineResult:
        """Process one entity's events; see :func:`process_timeline`."""
        return process_timeline(entity_id, raw_events, opened_at, as_of, self._calendar)
