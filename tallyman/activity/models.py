"""Storage-ready activity records."""

from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import typing

MetadataValue: typing.TypeAlias = str | int | float | bool | None
Metadata: typing.TypeAlias = dict[str, MetadataValue]


class ActivityKind(enum.StrEnum):
    """Closed set of normalized activity kinds."""

    COMMIT = "commit"
    ISSUE_CREATED = "issue_created"
    ISSUE_STATUS_CHANGE = "issue_status_change"
    ISSUE_LABELING = "issue_labeling"
    ISSUE_ASSIGNMENT = "issue_assignment"
    ISSUE_STATE_CHANGE = "issue_state_change"
    ISSUE_COMMENT = "issue_comment"
    PR_CREATED = "pr_created"
    PR_STATUS_CHANGE = "pr_status_change"
    PR_LABELING = "pr_labeling"
    PR_ASSIGNMENT = "pr_assignment"
    PR_STATE_CHANGE = "pr_state_change"
    PR_COMMENT = "pr_comment"
    PR_REVIEW = "pr_review"

    @property
    def is_history(self) -> bool:
        """Return True for kinds produced from timeline history items."""
        return self in _HISTORY_KINDS

    @property
    def is_created(self) -> bool:
        """Return True for entity creation kinds."""
        return self in {ActivityKind.ISSUE_CREATED, ActivityKind.PR_CREATED}

    @property
    def is_comment(self) -> bool:
        """Return True for comment kinds."""
        return self in {ActivityKind.ISSUE_COMMENT, ActivityKind.PR_COMMENT}


_HISTORY_KINDS = frozenset(
    {
        ActivityKind.ISSUE_STATUS_CHANGE,
        ActivityKind.ISSUE_LABELING,
        ActivityKind.ISSUE_ASSIGNMENT,
        ActivityKind.ISSUE_STATE_CHANGE,
        ActivityKind.PR_STATUS_CHANGE,
        ActivityKind.PR_LABELING,
        ActivityKind.PR_ASSIGNMENT,
        ActivityKind.PR_STATE_CHANGE,
    }
)


@dataclasses.dataclass(frozen=True, slots=True)
class ActivityRecord:
    """Normalized unit that crosses the storage boundary.

    ``dedupe_key`` identifies the logical event and never changes once
    assigned; re-ingesting the same event only refreshes the mutable fields
    (title, description, metadata).
    """

    kind: ActivityKind
    author: str
    occurred_at: dt.datetime
    repository: str
    title: str
    url: str
    description: str
    metadata: Metadata
    dedupe_key: str = ""
