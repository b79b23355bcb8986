"""Fan out to connectors and feed their events through the pipeline.

A run fetches every connector with bounded parallelism and a per-source
timeout. A failing source is logged and recorded but never cancels the
others. Once all fetches finish, events are grouped per entity, processed
into timelines, normalized into activity records, sorted by time, and
handed to the sink in one call.
"""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import time
import typing as typ

from tallyman.activity import ActivityNormalizer, ActivityValidationError
from tallyman.common.time import ensure_aware
from tallyman.connectors import SourceError
from tallyman.storage import ActivityBatchWriteError, collapse_duplicates
from tallyman.timeline import (
    DroppedEventCounts,
    TimelineEventProcessor,
    resolve_opened_at,
)

from .config import SyncConfig
from .models import SourceOutcome, SyncSummary
from .observability import SyncEventLogger, categorize_error

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from tallyman.activity import ActivityRecord
    from tallyman.common import ActivityWindow
    from tallyman.connectors import SourceConnector
    from tallyman.storage import ActivitySink
    from tallyman.timeline import RawEvent
    from tallyman.worktime import WorkingCalendar


@dataclasses.dataclass(slots=True)
class _Fetched:
    name: str
    events: list[RawEvent]
    duration: dt.timedelta
    error: BaseException | None = None


@dataclasses.dataclass(slots=True)
class _Entity:
    source: str
    events: list[RawEvent] = dataclasses.field(default_factory=list)


def _elapsed(started: float) -> dt.timedelta:
    return dt.timedelta(seconds=time.monotonic() - started)


def group_by_entity(fetched: cabc.Iterable[_Fetched]) -> dict[str, _Entity]:
    """Group events per entity in arrival order.

    Each entity is attributed to the first source that delivered one of its
    events.
    """
    entities: dict[str, _Entity] = {}
    for result in fetched:
        for event in result.events:
            entity = entities.setdefault(event.entity_id, _Entity(result.name))
            entity.events.append(event)
    return entities


class ConnectorOrchestrator:
    """Compose connectors, timeline processing, normalization, and a sink.

    Parameters
    ----------
    connectors
        Sources to fetch on every run.
    sink
        Destination for normalized records.
    calendar
        Working calendar applied to every duration in the run.
    config
        Concurrency and timeout limits.
    event_logger
        Structured event emitter; a default one is created when omitted.

    """

    def __init__(
        self,
        connectors: cabc.Sequence[SourceConnector],
        sink: ActivitySink,
        calendar: WorkingCalendar,
        *,
        config: SyncConfig | None = None,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Store collaborators; nothing is fetched until :meth:`sync`."""
        self._connectors = tuple(connectors)
        self._sink = sink
        self._config = config or SyncConfig()
        self._processor = TimelineEventProcessor(calendar)
        self._normalizer = ActivityNormalizer(calendar)
        self._events = event_logger or SyncEventLogger()

    async def sync(
        self, window: ActivityWindow, *, as_of: dt.datetime | None = None
    ) -> SyncSummary:
        """Run one sync over ``window`` and return its summary.

        ``as_of`` is the cutoff for open status intervals and defaults to
        ``window.end``. Source failures and sink failures are reported in the
        summary rather than raised.
        """
        cutoff = ensure_aware(as_of, "as_of") if as_of is not None else window.end
        run_started = time.monotonic()
        self._events.log_run_started(
            window=window, source_count=len(self._connectors)
        )

        semaphore = asyncio.Semaphore(self._config.max_concurrent_sources)
        fetched = await asyncio.gather(
            *(
                self._fetch(connector, window, semaphore)
                for connector in self._connectors
            )
        )

        records, sources_by_key, dropped, entity_errors = self._build_records(
            fetched, window, cutoff
        )

        persisted, persist_error = await self._persist(records)
        persisted_keys = {record.dedupe_key for record in records[:persisted]}

        outcomes = tuple(
            SourceOutcome(
                name=result.name,
                events_fetched=len(result.events),
                collected=sum(
                    1 for source in sources_by_key.values() if source == result.name
                ),
                persisted=sum(
                    1
                    for key, source in sources_by_key.items()
                    if source == result.name and key in persisted_keys
                ),
                duration=result.duration,
                error=None if result.error is None else str(result.error),
                error_category=(
                    None if result.error is None else categorize_error(result.error)
                ),
            )
            for result in fetched
        )
        summary = SyncSummary(
            window=window,
            as_of=cutoff,
            sources=outcomes,
            records=tuple(records),
            persisted=persisted,
            dropped=dropped,
            persist_error=persist_error,
            entity_errors=tuple(entity_errors),
        )
        self._events.log_run_completed(summary, _elapsed(run_started))
        return summary

    async def _fetch(
        self,
        connector: SourceConnector,
        window: ActivityWindow,
        semaphore: asyncio.Semaphore,
    ) -> _Fetched:
        name = connector.name
        timeout_s = self._config.source_timeout_s
        async with semaphore:
            started = time.monotonic()
            try:
                async with asyncio.timeout(timeout_s):
                    events = list(await connector.fetch(window))
            except TimeoutError:
                error: BaseException = SourceError.timeout(name, timeout_s)
            except Exception as exc:  # noqa: BLE001 - isolate each source
                error = exc
            else:
                duration = _elapsed(started)
                self._events.log_source_completed(
                    source=name, events_fetched=len(events), duration=duration
                )
                return _Fetched(name, events, duration)
        duration = _elapsed(started)
        self._events.log_source_failed(source=name, error=error, duration=duration)
        return _Fetched(name, [], duration, error)

    def _build_records(
        self,
        fetched: cabc.Sequence[_Fetched],
        window: ActivityWindow,
        as_of: dt.datetime,
    ) -> tuple[list[ActivityRecord], dict[str, str], DroppedEventCounts, list[str]]:
        records: list[ActivityRecord] = []
        source_of: dict[int, str] = {}
        dropped = DroppedEventCounts()
        entity_errors: list[str] = []

        for entity_id, entity in group_by_entity(fetched).items():
            subject = entity.events[0].subject
            opened_at = resolve_opened_at(subject, entity.events)
            if opened_at is None:
                lost = DroppedEventCounts(malformed=len(entity.events))
                self._events.log_events_dropped(entity_id=entity_id, dropped=lost)
                dropped += lost
                continue
            timeline = self._processor.process(
                entity_id, entity.events, opened_at, max(opened_at, as_of)
            )
            if timeline.dropped.total:
                self._events.log_events_dropped(
                    entity_id=entity_id, dropped=timeline.dropped
                )
                dropped += timeline.dropped
            try:
                entity_records = self._normalizer.normalize_timeline(
                    subject, timeline, window, as_of=as_of
                )
            except ActivityValidationError as exc:
                entity_errors.append(f"{entity_id}: {exc}")
                continue
            for record in entity_records:
                source_of[id(record)] = entity.source
            records.extend(entity_records)

        # list.sort is stable, so entity order breaks timestamp ties.
        records.sort(key=lambda record: record.occurred_at)
        unique = collapse_duplicates(records)
        sources_by_key = {record.dedupe_key: source_of[id(record)] for record in unique}
        return (unique, sources_by_key, dropped, entity_errors)

    async def _persist(
        self, records: cabc.Sequence[ActivityRecord]
    ) -> tuple[int, str | None]:
        if not records:
            return (0, None)
        try:
            return (await self._sink.upsert(records), None)
        except Exception as exc:  # noqa: BLE001 - reported in the summary
            self._events.log_persist_failed(error=exc, records=len(records))
            committed = exc.committed if isinstance(exc, ActivityBatchWriteError) else 0
            return (committed, str(exc))
