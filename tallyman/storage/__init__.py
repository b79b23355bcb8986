"""SQLAlchemy persistence for activity records."""

from __future__ import annotations

from .errors import (
    ActivityBatchWriteError,
    NegativePaginationError,
    UnsupportedDialectError,
)
from .repository import (
    DEFAULT_QUERY_LIMIT,
    ActivityQuery,
    ActivityRepository,
    to_activity_record,
)
from .storage import ActivityRow, Base, UTCDateTime, init_activity_storage
from .writer import (
    DEFAULT_BATCH_SIZE,
    ActivitySink,
    ActivityUpsertWriter,
    collapse_duplicates,
)

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_QUERY_LIMIT",
    "ActivityBatchWriteError",
    "ActivityQuery",
    "ActivityRepository",
    "ActivityRow",
    "ActivitySink",
    "ActivityUpsertWriter",
    "Base",
    "NegativePaginationError",
    "UTCDateTime",
    "UnsupportedDialectError",
    "collapse_duplicates",
    "init_activity_storage",
    "to_activity_record",
]
