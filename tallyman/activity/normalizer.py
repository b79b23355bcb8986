"""Map processed timelines onto storage-ready activity records.

The normalizer is a pure mapping: it windows each history item, comment,
review and commit into ``[window.start, window.end)``, attaches validated
metadata and a dedupe key, and returns the records in ascending time order.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from tallyman.timeline import EntityType, HistoryCategory
from tallyman.worktime import working_ms_between

from .keys import make_dedupe_key, short_hash
from .metadata import validate_metadata
from .models import ActivityKind, ActivityRecord
from .reviews import ReviewBlock, derive_review_block

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from tallyman.common import ActivityWindow
    from tallyman.timeline import (
        CommentInput,
        CommitInput,
        HistoryItem,
        ReviewInput,
        Subject,
        TimelineResult,
    )
    from tallyman.worktime import WorkingCalendar

_OPENED_ACTION = "opened"
_BODY_HASH_LENGTH = 16

_HISTORY_SUFFIXES: dict[HistoryCategory, str] = {
    HistoryCategory.STATUS: "status_change",
    HistoryCategory.LABEL: "labeling",
    HistoryCategory.ASSIGNMENT: "assignment",
    HistoryCategory.STATE: "state_change",
}


def _prefix(subject: Subject) -> str:
    return "pr" if subject.entity_type is EntityType.PULL_REQUEST else "issue"


def _history_kind(subject: Subject, item: HistoryItem) -> ActivityKind:
    if item.category is HistoryCategory.STATE and item.action == _OPENED_ACTION:
        return ActivityKind(f"{_prefix(subject)}_created")
    return ActivityKind(f"{_prefix(subject)}_{_HISTORY_SUFFIXES[item.category]}")


def _created_description(subject: Subject) -> str:
    if subject.entity_type is EntityType.PULL_REQUEST:
        label = "Created PR"
    else:
        label = "Opened issue"
    if subject.number is None:
        return label
    return f"{label} #{subject.number}"


def _history_description(item: HistoryItem) -> str:
    if item.category is HistoryCategory.STATE or item.value is None:
        return item.action
    return f"{item.action} {item.value}"


def _first_line(text: str) -> str:
    lines = text.strip().splitlines()
    return lines[0] if lines else ""


class ActivityNormalizer:
    """Build activity records for one subject at a time.

    Parameters
    ----------
    calendar
        Working calendar used for the ``lifetime_ms`` of creation records.

    """

    def __init__(self, calendar: WorkingCalendar) -> None:
        """Store the calendar used for lifetime durations."""
        self._calendar = calendar

    def normalize(  # noqa: PLR0913
        self,
        subject: Subject,
        history: cabc.Sequence[HistoryItem],
        comments: cabc.Sequence[CommentInput],
        reviews: cabc.Sequence[ReviewInput],
        commits: cabc.Sequence[CommitInput],
        window: ActivityWindow,
        *,
        as_of: dt.datetime | None = None,
    ) -> list[ActivityRecord]:
        """Return the subject's activity records inside ``window``.

        ``as_of`` bounds the lifetime of creation records and defaults to
        ``window.end``. Pull-request review blocking is derived from every
        review submitted before ``window.end``. Reviews on other subjects
        are ignored.

        Raises
        ------
        ActivityValidationError
            If a record's metadata does not match its kind's schema.

        """
        cutoff = as_of or window.end
        block = (
            derive_review_block(reviews, before=window.end)
            if subject.entity_type is EntityType.PULL_REQUEST
            else None
        )
        records: list[ActivityRecord] = []
        if subject.entity_type is not EntityType.COMMIT:
            records.extend(
                self._history_record(subject, item, block, cutoff)
                for item in history
                if window.contains(item.when)
            )
            records.extend(
                self._comment_record(subject, comment)
                for comment in comments
                if window.contains(comment.when)
            )
        if block is not None:
            records.extend(
                self._review_record(subject, review, block)
                for review in reviews
                if window.contains(review.when)
            )
        records.extend(
            self._commit_record(subject, commit)
            for commit in commits
            if window.contains(commit.when)
        )
        records.sort(key=lambda record: record.occurred_at)
        return records

    def normalize_timeline(
        self,
        subject: Subject,
        timeline: TimelineResult,
        window: ActivityWindow,
        *,
        as_of: dt.datetime | None = None,
    ) -> list[ActivityRecord]:
        """Normalize a processed timeline; see :meth:`normalize`."""
        return self.normalize(
            subject,
            timeline.history,
            timeline.comments,
            timeline.reviews,
            timeline.commits,
            window,
            as_of=as_of,
        )

    def _history_record(
        self,
        subject: Subject,
        item: HistoryItem,
        block: ReviewBlock | None,
        cutoff: dt.datetime,
    ) -> ActivityRecord:
        kind = _history_kind(subject, item)
        metadata: dict[str, typ.Any] = {
            "number": subject.number,
            "action": item.action,
            "value": item.value,
            "previous_value": item.previous_value,
            "duration_ms": item.working_duration_ms,
        }
        if kind.is_created:
            metadata["lifetime_ms"] = working_ms_between(
                item.when, max(item.when, cutoff), self._calendar
            )
            if block is not None:
                metadata["request_changes_active"] = block.active
                metadata["requested_changes_by"] = block.requested_by
            description = _created_description(subject)
        else:
            description = _history_description(item)
        return _finish(
            kind, subject, item.actor, item.when, subject.title, description, metadata
        )

    def _comment_record(
        self, subject: Subject, comment: CommentInput
    ) -> ActivityRecord:
        kind = ActivityKind(f"{_prefix(subject)}_comment")
        metadata = {
            "number": subject.number,
            "comment_id": comment.comment_id,
            "body_hash": short_hash(comment.body, _BODY_HASH_LENGTH),
        }
        return _finish(
            kind,
            subject,
            comment.actor,
            comment.when,
            subject.title,
            comment.body,
            metadata,
        )

    def _review_record(
        self, subject: Subject, review: ReviewInput, block: ReviewBlock
    ) -> ActivityRecord:
        metadata = {
            "number": subject.number,
            "state": review.state,
            "review_id": review.review_id,
            "request_changes_active": block.active,
            "requested_changes_by": block.requested_by,
        }
        return _finish(
            ActivityKind.PR_REVIEW,
            subject,
            review.actor,
            review.when,
            subject.title,
            review.body or review.state,
            metadata,
        )

    def _commit_record(self, subject: Subject, commit: CommitInput) -> ActivityRecord:
        metadata = {
            "hash": commit.hash,
            "email": commit.email,
            "branch": commit.branch,
            "lines_added": commit.lines_added,
            "lines_removed": commit.lines_removed,
            "is_fork": commit.is_fork,
        }
        return _finish(
            ActivityKind.COMMIT,
            subject,
            commit.actor,
            commit.when,
            _first_line(commit.message),
            commit.message,
            metadata,
        )


def _finish(  # noqa: PLR0913
    kind: ActivityKind,
    subject: Subject,
    author: str,
    occurred_at: dt.datetime,
    title: str,
    description: str,
    metadata: dict[str, typ.Any],
) -> ActivityRecord:
    record = ActivityRecord(
        kind=kind,
        author=author,
        occurred_at=occurred_at,
        repository=subject.repository,
        title=title,
        url=subject.url,
        description=description,
        metadata=validate_metadata(kind, metadata),
    )
    return dataclasses.replace(record, dedupe_key=make_dedupe_key(record))
