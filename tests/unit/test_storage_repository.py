"""Unit tests for querying stored activity."""

from __future__ import annotations

import dataclasses
import typing as typ

import pytest
import pytest_asyncio

from tallyman.activity import ActivityKind, ActivityRecord, make_dedupe_key
from tallyman.common import TimezoneAwareRequiredError
from tallyman.storage import (
    ActivityQuery,
    ActivityRepository,
    ActivityUpsertWriter,
    NegativePaginationError,
)
from tests.helpers.events import utc

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def _record(
    author: str, repository: str, kind: ActivityKind, when: dt.datetime, n: int
) -> ActivityRecord:
    metadata: dict[str, typ.Any]
    if kind is ActivityKind.COMMIT:
        metadata = {"hash": f"h{n}"}
    else:
        metadata = {"number": n, "state": "approved"}
    record = ActivityRecord(
        kind=kind,
        author=author,
        occurred_at=when,
        repository=repository,
        title=f"t{n}",
        url="",
        description="",
        metadata=metadata,
    )
    return dataclasses.replace(record, dedupe_key=make_dedupe_key(record))


@pytest_asyncio.fixture
async def repository(
    session_factory: async_sessionmaker[AsyncSession],
) -> ActivityRepository:
    """Return a repository over a store with five known records."""
    await ActivityUpsertWriter(session_factory).upsert(
        [
            _record("alice", "acme/api", ActivityKind.COMMIT, utc(2024, 3, 4, 9), 1),
            _record("alice", "acme/web", ActivityKind.COMMIT, utc(2024, 3, 5, 9), 2),
            _record("bob", "acme/api", ActivityKind.PR_REVIEW, utc(2024, 3, 6, 9), 3),
            _record("alice", "acme/api", ActivityKind.PR_REVIEW, utc(2024, 3, 7, 9), 4),
            _record("bob", "acme/api", ActivityKind.COMMIT, utc(2024, 3, 8, 9), 5),
        ]
    )
    return ActivityRepository(session_factory)


@pytest.mark.asyncio
async def test_find_returns_newest_first(repository: ActivityRepository) -> None:
    """Results are ordered by occurrence time, newest first."""
    records = await repository.find(ActivityQuery())
    assert [record.title for record in records] == ["t5", "t4", "t3", "t2", "t1"]


@pytest.mark.asyncio
async def test_find_filters_combine(repository: ActivityRepository) -> None:
    """Author, repository, and kind filters all apply together."""
    records = await repository.find(
        ActivityQuery(author="alice", repository="acme/api", kind=ActivityKind.COMMIT)
    )
    assert [record.title for record in records] == ["t1"]


@pytest.mark.asyncio
async def test_date_range_is_half_open(repository: ActivityRepository) -> None:
    """The start bound is inclusive and the end bound exclusive."""
    query = ActivityQuery(start=utc(2024, 3, 5, 9), end=utc(2024, 3, 7, 9))
    records = await repository.find(query)
    assert [record.title for record in records] == ["t3", "t2"]
    assert await repository.count(query) == 2


@pytest.mark.asyncio
async def test_pagination(repository: ActivityRepository) -> None:
    """Limit and offset page through the ordering; count ignores them."""
    query = ActivityQuery(limit=2, offset=1)
    records = await repository.find(query)
    assert [record.title for record in records] == ["t4", "t3"]
    assert await repository.count(query) == 5


@pytest.mark.asyncio
async def test_round_trip_preserves_record(repository: ActivityRepository) -> None:
    """Stored rows map back onto equal records."""
    expected = _record("bob", "acme/api", ActivityKind.COMMIT, utc(2024, 3, 8, 9), 5)
    assert await repository.get(expected.dedupe_key) == expected
    assert await repository.get("missing") is None


@pytest.mark.parametrize(
    ("kwargs", "error"),
    [
        ({"limit": -1}, NegativePaginationError),
        ({"offset": -1}, NegativePaginationError),
        ({"start": utc(2024, 1, 1).replace(tzinfo=None)}, TimezoneAwareRequiredError),
    ],
)
def test_query_validation(kwargs: dict[str, typ.Any], error: type[Exception]) -> None:
    """Negative pagination and naive bounds are rejected."""
    with pytest.raises(error):
        ActivityQuery(**kwargs)
