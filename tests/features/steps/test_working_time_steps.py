"""Behavioural tests for working-time interval durations."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from tallyman.timeline import TimelineEventProcessor, TimelineResult
from tallyman.worktime import WorkingCalendar
from tests.helpers.events import entity_id_for, issue_subject, raw_event, utc

if typ.TYPE_CHECKING:
    from tallyman.timeline import RawEvent

scenarios("../working_time.feature")

_SUBJECT = issue_subject()


class WorkingTimeContext(typ.TypedDict, total=False):
    """Shared context for working-time scenarios."""

    calendar: WorkingCalendar
    events: list[RawEvent]
    timeline: TimelineResult


@pytest.fixture
def working_time_context() -> WorkingTimeContext:
    """Provide fresh context for each scenario."""
    return {"events": []}


def _at(day: str, time: str) -> dt.datetime:
    hour, minute = (int(part) for part in time.split(":"))
    return dt.datetime.fromisoformat(day).replace(
        hour=hour, minute=minute, tzinfo=dt.UTC
    )


@given("the default working calendar")
def default_calendar(working_time_context: WorkingTimeContext) -> None:
    """Use Monday-Friday, 09:00-17:00 UTC."""
    working_time_context["calendar"] = WorkingCalendar()


@given(parsers.parse("a working calendar with {holiday} as a holiday"))
def calendar_with_holiday(
    working_time_context: WorkingTimeContext, holiday: str
) -> None:
    """Use the default calendar plus one holiday."""
    working_time_context["calendar"] = WorkingCalendar(
        holidays=frozenset({dt.date.fromisoformat(holiday)})
    )


@when(parsers.parse('an issue moves to "{status}" on {weekday} {day} at {time}'))
@when(parsers.parse('it moves to "{status}" on {weekday} {day} at {time}'))
def status_moves(
    working_time_context: WorkingTimeContext,
    status: str,
    weekday: str,
    day: str,
    time: str,
) -> None:
    """Record a status change and rebuild the timeline."""
    when_at = _at(day, time)
    assert when_at.strftime("%A") == weekday
    events = working_time_context["events"]
    events.append(
        raw_event("status_changed", "alice", when_at, _SUBJECT, status=status)
    )
    processor = TimelineEventProcessor(working_time_context["calendar"])
    working_time_context["timeline"] = processor.process(
        entity_id_for(_SUBJECT), events, utc(2024, 3, 1), events[-1].occurred_at
    )


@then(parsers.parse('the "{status}" interval lasted {hours:d} working hours'))
def interval_lasted(
    working_time_context: WorkingTimeContext, status: str, hours: int
) -> None:
    """Check the working duration of the named status interval."""
    (interval,) = (
        interval
        for interval in working_time_context["timeline"].intervals
        if interval.status == status
    )
    assert interval.working_duration_ms == hours * 3_600_000
