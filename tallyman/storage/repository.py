"""Query surface over stored activity records.

Example:
-------
Fetch the latest pull-request reviews by one author::

    query = ActivityQuery(author="alice", kind=ActivityKind.PR_REVIEW, limit=20)
    records = await ActivityRepository(session_factory).find(query)

"""

from __future__ import annotations

import dataclasses
import typing as typ

from sqlalchemy import Select, func, select

from tallyman.activity import ActivityKind, ActivityRecord
from tallyman.common.time import ensure_aware

from .errors import NegativePaginationError
from .storage import ActivityRow

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

DEFAULT_QUERY_LIMIT = 100


@dataclasses.dataclass(frozen=True, slots=True)
class ActivityQuery:
    """Filters for stored activity records.

    Attributes
    ----------
    author, repository, kind
        Exact-match filters; ``None`` disables the filter.
    start, end
        Half-open ``[start, end)`` bounds on ``occurred_at``.
    limit, offset
        Pagination over the newest-first ordering. ``limit=None`` returns
        every match.

    """

    author: str | None = None
    repository: str | None = None
    kind: ActivityKind | None = None
    start: dt.datetime | None = None
    end: dt.datetime | None = None
    limit: int | None = DEFAULT_QUERY_LIMIT
    offset: int | None = None

    def __post_init__(self) -> None:
        """Reject negative pagination and naive bounds."""
        if self.limit is not None and self.limit < 0:
            raise NegativePaginationError("limit")
        if self.offset is not None and self.offset < 0:
            raise NegativePaginationError("offset")
        if self.start is not None:
            ensure_aware(self.start, "start")
        if self.end is not None:
            ensure_aware(self.end, "end")


def _apply_filters(stmt: Select, query: ActivityQuery) -> Select:
    if query.author is not None:
        stmt = stmt.where(ActivityRow.author == query.author)
    if query.repository is not None:
        stmt = stmt.where(ActivityRow.repository == query.repository)
    if query.kind is not None:
        stmt = stmt.where(ActivityRow.kind == query.kind.value)
    if query.start is not None:
        stmt = stmt.where(ActivityRow.occurred_at >= query.start)
    if query.end is not None:
        stmt = stmt.where(ActivityRow.occurred_at < query.end)
    return stmt


def to_activity_record(row: ActivityRow) -> ActivityRecord:
    """Map a stored row back onto the record it was written from."""
    return ActivityRecord(
        kind=ActivityKind(row.kind),
        author=row.author,
        occurred_at=row.occurred_at,
        repository=row.repository,
        title=row.title,
        url=row.url,
        description=row.description,
        metadata=dict(row.metadata_json),
        dedupe_key=row.dedupe_key,
    )


class ActivityRepository:
    """Read-only access to the activities table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the session factory used for queries."""
        self._session_factory = session_factory

    async def find(self, query: ActivityQuery) -> list[ActivityRecord]:
        """Return matching records, newest first."""
        stmt = _apply_filters(select(ActivityRow), query).order_by(
            ActivityRow.occurred_at.desc(), ActivityRow.id.desc()
        )
        if query.offset is not None:
            stmt = stmt.offset(query.offset)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
        return [to_activity_record(row) for row in rows]

    async def count(self, query: ActivityQuery) -> int:
        """Return how many records match, ignoring pagination."""
        stmt = _apply_filters(select(func.count(ActivityRow.id)), query)
        async with self._session_factory() as session:
            return int(await session.scalar(stmt) or 0)

    async def get(self, dedupe_key: str) -> ActivityRecord | None:
        """Return the record stored under ``dedupe_key``, if any."""
        stmt = select(ActivityRow).where(ActivityRow.dedupe_key == dedupe_key)
        async with self._session_factory() as session:
            row = await session.scalar(stmt)
        return None if row is None else to_activity_record(row)

    async def created_at(self, dedupe_key: str) -> dt.datetime | None:
        """Return when the record under ``dedupe_key`` was first stored."""
        stmt = select(ActivityRow.created_at).where(
            ActivityRow.dedupe_key == dedupe_key
        )
        async with self._session_factory() as session:
            return await session.scalar(stmt)
