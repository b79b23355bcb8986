"""Behavioural tests for pull-request review blocking."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from tallyman.activity import ActivityKind, ActivityNormalizer, ActivityRecord
from tallyman.common import ActivityWindow
from tallyman.timeline import TimelineEventProcessor
from tallyman.worktime import WorkingCalendar
from tests.helpers.events import entity_id_for, pr_subject, raw_event, utc

if typ.TYPE_CHECKING:
    from tallyman.timeline import RawEvent

scenarios("../review_blocking.feature")

_SUBJECT = pr_subject()
_OPENED_AT = utc(2024, 3, 4, 9)
_WINDOW = ActivityWindow(utc(2024, 3, 1), utc(2024, 4, 1))


class ReviewContext(typ.TypedDict, total=False):
    """Shared context for review-blocking scenarios."""

    events: list[RawEvent]
    records: list[ActivityRecord]


@pytest.fixture
def review_context() -> ReviewContext:
    """Provide fresh context for each scenario."""
    return {"events": []}


def _next_time(context: ReviewContext) -> dt.datetime:
    return _OPENED_AT + dt.timedelta(hours=len(context["events"]))


@given(parsers.parse('a pull request opened by "{author}"'))
def pull_request_opened(review_context: ReviewContext, author: str) -> None:
    """Record the pull request's opening event."""
    review_context["events"].append(
        raw_event("opened", author, _OPENED_AT, _SUBJECT)
    )


@given(parsers.parse('"{reviewer}" requests changes'))
def changes_requested(review_context: ReviewContext, reviewer: str) -> None:
    """Record a review requesting changes."""
    review_context["events"].append(
        raw_event(
            "reviewed",
            reviewer,
            _next_time(review_context),
            _SUBJECT,
            state="changes_requested",
        )
    )


@given(parsers.parse('"{reviewer}" approves'))
def approved(review_context: ReviewContext, reviewer: str) -> None:
    """Record an approving review."""
    review_context["events"].append(
        raw_event(
            "reviewed", reviewer, _next_time(review_context), _SUBJECT, state="approved"
        )
    )


@when("the pull request is normalized")
def normalize(review_context: ReviewContext) -> None:
    """Process the events and normalize them into activity records."""
    calendar = WorkingCalendar()
    timeline = TimelineEventProcessor(calendar).process(
        entity_id_for(_SUBJECT), review_context["events"], _OPENED_AT, _WINDOW.end
    )
    review_context["records"] = ActivityNormalizer(calendar).normalize_timeline(
        _SUBJECT, timeline, _WINDOW
    )


def _created(context: ReviewContext) -> ActivityRecord:
    (record,) = (
        record
        for record in context["records"]
        if record.kind is ActivityKind.PR_CREATED
    )
    return record


@then("the creation record reports no active block")
def no_active_block(review_context: ReviewContext) -> None:
    """Check the block has been lifted."""
    metadata = _created(review_context).metadata
    assert metadata["request_changes_active"] is False
    assert "requested_changes_by" not in metadata


@then(parsers.parse('the creation record reports a block requested by "{reviewer}"'))
def active_block(review_context: ReviewContext, reviewer: str) -> None:
    """Check the block is active and names the latest blocking reviewer."""
    metadata = _created(review_context).metadata
    assert metadata["request_changes_active"] is True
    assert metadata["requested_changes_by"] == reviewer
