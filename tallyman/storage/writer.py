"""Idempotent batch upsert of activity records.

Records are written with the database's native ``INSERT ... ON CONFLICT DO
UPDATE`` keyed on ``dedupe_key``. Each chunk commits in its own transaction,
so a failure leaves earlier chunks in place and reports the failed range.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from tallyman.activity import make_dedupe_key
from tallyman.common.time import utcnow
from tallyman.logging import get_logger, log_debug

from .errors import ActivityBatchWriteError, UnsupportedDialectError
from .storage import ActivityRow

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from tallyman.activity import ActivityRecord

DEFAULT_BATCH_SIZE = 100

_INSERTS: dict[str, typ.Any] = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

logger = get_logger(__name__)


class ActivitySink(typ.Protocol):
    """Anything that can persist activity records idempotently."""

    async def upsert(self, records: cabc.Sequence[ActivityRecord]) -> int:
        """Persist ``records`` and return how many were committed."""
        ...


def collapse_duplicates(
    records: cabc.Iterable[ActivityRecord],
) -> list[ActivityRecord]:
    """Return one record per dedupe key, keeping the last occurrence.

    Records without a key are keyed here. The result keeps the position of
    each key's first occurrence.
    """
    by_key: dict[str, ActivityRecord] = {}
    for record in records:
        key = record.dedupe_key or make_dedupe_key(record)
        by_key[key] = record
    return list(by_key.values())


def _row_values(record: ActivityRecord, now: dt.datetime) -> dict[str, typ.Any]:
    return {
        "dedupe_key": record.dedupe_key or make_dedupe_key(record),
        "kind": record.kind.value,
        "author": record.author,
        "occurred_at": record.occurred_at,
        "repository": record.repository,
        "title": record.title,
        "url": record.url,
        "description": record.description,
        "metadata_json": dict(record.metadata),
        "created_at": now,
        "updated_at": now,
    }


class ActivityUpsertWriter:
    """SQLAlchemy-backed activity sink for SQLite and PostgreSQL."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        """Store the session factory and chunk size used for writes."""
        if batch_size < 1:
            msg = "batch_size must be positive"
            raise ValueError(msg)
        self._session_factory = session_factory
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        """Return the number of records written per statement."""
        return self._batch_size

    async def upsert(self, records: cabc.Sequence[ActivityRecord]) -> int:
        """Insert new records and refresh the mutable fields of known ones.

        Returns
        -------
        int
            Number of distinct records written.

        Raises
        ------
        ActivityBatchWriteError
            If a chunk fails; earlier chunks remain committed.

        """
        unique = collapse_duplicates(records)
        total = len(unique)
        committed = 0
        for start in range(0, total, self._batch_size):
            chunk = unique[start : start + self._batch_size]
            end = start + len(chunk)
            try:
                await self._write_chunk(chunk)
            except SQLAlchemyError as exc:
                raise ActivityBatchWriteError(start, end, total, committed) from exc
            committed += len(chunk)
            log_debug(
                logger, "Upserted activity records %d-%d of %d", start, end, total
            )
        return committed

    async def _write_chunk(self, chunk: cabc.Sequence[ActivityRecord]) -> None:
        now = utcnow()
        async with self._session_factory() as session, session.begin():
            dialect = session.get_bind().dialect.name
            insert = _INSERTS.get(dialect)
            if insert is None:
                raise UnsupportedDialectError(dialect)
            stmt = insert(ActivityRow).values(
                [_row_values(record, now) for record in chunk]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[ActivityRow.dedupe_key],
                set_={
                    "title": stmt.excluded.title,
                    "description": stmt.excluded.description,
                    "metadata_json": stmt.excluded.metadata_json,
                    "updated_at": now,
                },
            )
            await session.execute(stmt)
