"""Timeline reconstruction from raw per-entity events."""

from __future__ import annotations

from .kinds import ACTIVITY_KINDS, HISTORY_KINDS, KindSpec, resolve_kind
from .models import (
    INITIAL_STATUS,
    CommentInput,
    CommitInput,
    DroppedEventCounts,
    EntityType,
    EventKind,
    HistoryCategory,
    HistoryItem,
    RawEvent,
    ReviewInput,
    StatusInterval,
    Subject,
    TimelineResult,
)
from .processor import (
    TimelineEventProcessor,
    build_status_intervals,
    normalise_review_state,
    process_timeline,
    resolve_opened_at,
)

__all__ = [
    "ACTIVITY_KINDS",
    "HISTORY_KINDS",
    "INITIAL_STATUS",
    "CommentInput",
    "CommitInput",
    "DroppedEventCounts",
    "EntityType",
    "EventKind",
    "HistoryCategory",
    "HistoryItem",
    "KindSpec",
    "RawEvent",
    "ReviewInput",
    "StatusInterval",
    "Subject",
    "TimelineEventProcessor",
    "TimelineResult",
    "build_status_intervals",
    "normalise_review_state",
    "process_timeline",
    "resolve_opened_at",
]
