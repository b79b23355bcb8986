"""Typed domain models for timeline reconstruction."""

from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import typing as typ

INITIAL_STATUS = "Initial"


class EntityType(enum.StrEnum):
    """Kinds of tracked work whose history is reconstructed."""

    ISSUE = "issue"
    PULL_REQUEST = "pull_request"
    COMMIT = "commit"


class EventKind(enum.StrEnum):
    """Raw event kinds recognised by the timeline processor."""

    OPENED = "opened"
    STATUS_CHANGED = "status_changed"
    LABELED = "labeled"
    UNLABELED = "unlabeled"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    CLOSED = "closed"
    REOPENED = "reopened"
    COMMENTED = "commented"
    REVIEWED = "reviewed"
    COMMITTED = "committed"


class HistoryCategory(enum.StrEnum):
    """Category tags for reconstructed history items."""

    STATUS = "status"
    LABEL = "label"
    ASSIGNMENT = "assignment"
    STATE = "state"


@dataclasses.dataclass(frozen=True, slots=True)
class Subject:
    """The issue, pull request, or commit an event belongs to."""

    entity_type: EntityType
    repository: str
    title: str = ""
    url: str = ""
    number: int | None = None
    opened_at: dt.datetime | None = None
    author: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class RawEvent:
    """One atomic occurrence as delivered by a source connector.

    ``kind`` stays a plain string so that connectors can forward kinds this
    version does not know; the processor drops them instead of failing.
    """

    entity_id: str
    kind: str
    actor: str | None
    occurred_at: dt.datetime | None
    subject: Subject
    payload: dict[str, typ.Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True, slots=True)
class HistoryItem:
    """A reconstructed, categorised entry in an entity's history."""

    category: HistoryCategory
    action: str
    value: str | None
    actor: str
    when: dt.datetime
    previous_value: str | None = None
    working_duration_ms: int | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class CommentInput:
    """A comment left on an issue or pull request."""

    actor: str
    when: dt.datetime
    body: str
    comment_id: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class ReviewInput:
    """A pull-request review submission."""

    actor: str
    when: dt.datetime
    state: str
    body: str = ""
    review_id: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class CommitInput:
    """A commit attributed to a repository."""

    actor: str
    when: dt.datetime
    hash: str
    message: str = ""
    email: str | None = None
    branch: str | None = None
    lines_added: int = 0
    lines_removed: int = 0
    is_fork: bool = False


@dataclasses.dataclass(frozen=True, slots=True)
class StatusInterval:
    """A maximal time range during which an entity held one status.

    The final interval of a timeline is open: it ends at the processing
    cutoff rather than at a real event and is recomputed on every run.
    """

    status: str
    started_at: dt.datetime
    ended_at: dt.datetime
    working_duration: dt.timedelta
    is_open: bool = False

    @property
    def working_duration_ms(self) -> int:
        """Return the working duration in whole milliseconds."""
        return self.working_duration // dt.timedelta(milliseconds=1)


@dataclasses.dataclass(frozen=True, slots=True)
class DroppedEventCounts:
    """Counts of raw events discarded during processing."""

    unknown_kind: int = 0
    malformed: int = 0

    @property
    def total(self) -> int:
        """Return the number of dropped events."""
        return self.unknown_kind + self.malformed

    def __add__(self, other: DroppedEventCounts) -> DroppedEventCounts:
        """Combine counts from several entities."""
        return DroppedEventCounts(
            unknown_kind=self.unknown_kind + other.unknown_kind,
            malformed=self.malformed + other.malformed,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class TimelineResult:
    """Output of processing one entity's raw events."""

    entity_id: str
    history: tuple[HistoryItem, ...]
    intervals: tuple[StatusInterval, ...]
    comments: tuple[CommentInput, ...] = ()
    reviews: tuple[ReviewInput, ...] = ()
    commits: tuple[CommitInput, ...] = ()
    dropped: DroppedEventCounts = DroppedEventCounts()

    @property
    def current_status(self) -> str | None:
        """Return the status held at the cutoff, if any interval exists."""
        return self.intervals[-1].status if self.intervals else None

    @property
    def status_durations(self) -> dict[str, dt.timedelta]:
        """Return total working time per status, summed across recurrences."""
        totals: dict[str, dt.timedelta] = {}
        for interval in self.intervals:
            totals[interval.status] = (
                totals.get(interval.status, dt.timedelta(0))
                + interval.working_duration
            )
        return totals

    @property
    def total_working_time(self) -> dt.timedelta:
        """Return the working time covered by all intervals."""
        return sum(
            (interval.working_duration for interval in self.intervals),
            dt.timedelta(0),
        )
