"""Structured observability events for sync runs.

Every event is one log line of the form ``[event.type] key=value ...`` so
log aggregators can parse runs without a metrics backend.

Usage
-----
>>> event_logger = SyncEventLogger()
>>> event_logger.log_run_started(window=window, source_count=2)

"""

from __future__ import annotations

import enum
import typing as typ

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from tallyman.activity import ActivityValidationError
from tallyman.connectors import SourceError
from tallyman.logging import get_logger, log_error, log_info, log_warning
from tallyman.storage import ActivityBatchWriteError
from tallyman.worktime import CalendarConfigError

from .errors import SyncConfigError

if typ.TYPE_CHECKING:
    import datetime as dt

    from tallyman.common import ActivityWindow
    from tallyman.timeline import DroppedEventCounts

    from .models import SyncSummary

logger = get_logger(__name__)


class SyncEventType(enum.StrEnum):
    """Structured log event types for sync runs."""

    RUN_STARTED = "sync.run.started"
    RUN_COMPLETED = "sync.run.completed"
    SOURCE_COMPLETED = "sync.source.completed"
    SOURCE_FAILED = "sync.source.failed"
    EVENTS_DROPPED = "sync.events.dropped"
    PERSIST_FAILED = "sync.persist.failed"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in summaries and alerts."""

    TRANSIENT = "transient"
    SOURCE_ERROR = "source_error"
    TIMEOUT = "timeout"
    CONFIGURATION = "configuration"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (TimeoutError, ErrorCategory.TIMEOUT),
    (CalendarConfigError, ErrorCategory.CONFIGURATION),
    (SyncConfigError, ErrorCategory.CONFIGURATION),
    (ActivityValidationError, ErrorCategory.DATA_INTEGRITY),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
    (ConnectionError, ErrorCategory.TRANSIENT),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for summaries and alert routing."""
    # Source timeouts are reported as timeouts, not generic source errors.
    if isinstance(exc, SourceError):
        if exc.reason == "timeout":
            return ErrorCategory.TIMEOUT
        return ErrorCategory.SOURCE_ERROR

    # A failed chunk is classified by the database error that caused it.
    if isinstance(exc, ActivityBatchWriteError) and exc.__cause__ is not None:
        return categorize_error(exc.__cause__)

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class SyncEventLogger:
    """Emit structured sync events via femtologging.

    Success events are logged at INFO, dropped events at WARNING, and
    failures at ERROR.
    """

    def log_run_started(self, *, window: ActivityWindow, source_count: int) -> None:
        """Log the start of a sync over ``window``."""
        log_info(
            logger,
            "[%s] window_start=%s window_end=%s source_count=%d",
            SyncEventType.RUN_STARTED,
            window.start.isoformat(),
            window.end.isoformat(),
            source_count,
        )

    def log_run_completed(self, summary: SyncSummary, duration: dt.timedelta) -> None:
        """Log run completion with per-run totals."""
        log_info(
            logger,
            "[%s] duration_seconds=%.3f sources_succeeded=%d sources_failed=%d "
            "activities_collected=%d activities_persisted=%d events_dropped=%d",
            SyncEventType.RUN_COMPLETED,
            duration.total_seconds(),
            summary.sources_succeeded,
            summary.sources_failed,
            summary.collected,
            summary.persisted,
            summary.dropped.total,
        )

    def log_source_completed(
        self, *, source: str, events_fetched: int, duration: dt.timedelta
    ) -> None:
        """Log a connector that returned its events."""
        log_info(
            logger,
            "[%s] source=%s duration_seconds=%.3f events_fetched=%d",
            SyncEventType.SOURCE_COMPLETED,
            source,
            duration.total_seconds(),
            events_fetched,
        )

    def log_source_failed(
        self, *, source: str, error: BaseException, duration: dt.timedelta
    ) -> None:
        """Log a connector failure with its error category."""
        log_error(
            logger,
            "[%s] source=%s duration_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            SyncEventType.SOURCE_FAILED,
            source,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_events_dropped(
        self, *, entity_id: str, dropped: DroppedEventCounts
    ) -> None:
        """Log raw events discarded while processing one entity."""
        log_warning(
            logger,
            "[%s] entity_id=%s unknown_kind=%d malformed=%d",
            SyncEventType.EVENTS_DROPPED,
            entity_id,
            dropped.unknown_kind,
            dropped.malformed,
        )

    def log_persist_failed(self, *, error: BaseException, records: int) -> None:
        """Log a sink failure, including the failed range when known."""
        start = end = committed = None
        if isinstance(error, ActivityBatchWriteError):
            start, end, committed = error.start, error.end, error.committed
        log_error(
            logger,
            "[%s] records=%d failed_start=%s failed_end=%s committed=%s "
            "error_type=%s error_category=%s error_message=%s",
            SyncEventType.PERSIST_FAILED,
            records,
            start,
            end,
            committed,
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )
