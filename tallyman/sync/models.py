"""Result types reported by a sync run."""

from __future__ import annotations

import dataclasses
import typing as typ

from tallyman.timeline import DroppedEventCounts

if typ.TYPE_CHECKING:
    import datetime as dt

    from tallyman.activity import ActivityRecord
    from tallyman.common import ActivityWindow

    from .observability import ErrorCategory


@dataclasses.dataclass(frozen=True, slots=True)
class SourceOutcome:
    """What one connector contributed to a run.

    Attributes
    ----------
    name
        Connector name.
    events_fetched
        Raw events returned by the connector.
    collected
        Activity records derived from entities this source introduced.
    persisted
        Records from ``collected`` that the sink committed.
    duration
        Wall time spent fetching.
    error, error_category
        Failure message and category; both ``None`` on success.

    """

    name: str
    events_fetched: int = 0
    collected: int = 0
    persisted: int = 0
    duration: dt.timedelta | None = None
    error: str | None = None
    error_category: ErrorCategory | None = None

    @property
    def succeeded(self) -> bool:
        """Return True when the connector fetched without error."""
        return self.error is None


@dataclasses.dataclass(frozen=True, slots=True)
class SyncSummary:
    """Outcome of one sync over a window, emitted even on partial failure."""

    window: ActivityWindow
    as_of: dt.datetime
    sources: tuple[SourceOutcome, ...] = ()
    records: tuple[ActivityRecord, ...] = ()
    persisted: int = 0
    dropped: DroppedEventCounts = DroppedEventCounts()
    persist_error: str | None = None
    entity_errors: tuple[str, ...] = ()

    @property
    def collected(self) -> int:
        """Return the number of distinct records produced by the run."""
        return len(self.records)

    @property
    def sources_succeeded(self) -> int:
        """Return how many connectors fetched without error."""
        return sum(1 for source in self.sources if source.succeeded)

    @property
    def sources_failed(self) -> int:
        """Return how many connectors failed."""
        return len(self.sources) - self.sources_succeeded

    @property
    def errors(self) -> tuple[str, ...]:
        """Return every error message reported by the run."""
        messages = [
            f"{source.name}: {source.error}"
            for source in self.sources
            if source.error is not None
        ]
        messages.extend(self.entity_errors)
        if self.persist_error is not None:
            messages.append(f"persist: {self.persist_error}")
        return tuple(messages)

    @property
    def succeeded(self) -> bool:
        """Return True unless every source failed or persisting failed.

        A run with no connectors at all counts as succeeded.
        """
        if self.persist_error is not None:
            return False
        return not self.sources or self.sources_succeeded > 0
