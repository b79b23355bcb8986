"""Read raw events from a JSON-lines file.

Each non-blank line is one event::

    {"kind": "status_changed", "actor": "alice",
     "occurred_at": "2024-03-04T10:00:00Z",
     "subject": {"type": "issue", "repository": "acme/api", "number": 7},
     "payload": {"status": "In Review"}}

``entity_id`` may be omitted when the subject has a number or a URL.
Missing actors or timestamps are passed through so the timeline processor
can count them as malformed; lines that are not valid JSON objects of this
shape fail the whole fetch.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ
from pathlib import Path

import msgspec

from tallyman.logging import get_logger, log_debug
from tallyman.timeline import EntityType, RawEvent, Subject

from .errors import SourceError

if typ.TYPE_CHECKING:
    from tallyman.common import ActivityWindow

logger = get_logger(__name__)


class SubjectLine(msgspec.Struct, frozen=True, kw_only=True):
    """Subject object embedded in each event line."""

    type: EntityType
    repository: str
    number: int | None = None
    title: str = ""
    url: str = ""
    opened_at: dt.datetime | None = None
    author: str | None = None


class EventLine(msgspec.Struct, frozen=True, kw_only=True):
    """One decoded event line."""

    kind: str
    subject: SubjectLine
    entity_id: str | None = None
    actor: str | None = None
    occurred_at: dt.datetime | None = None
    payload: dict[str, typ.Any] = msgspec.field(default_factory=dict)


def default_entity_id(subject: Subject) -> str | None:
    """Derive an entity id from the subject's number or URL."""
    if subject.number is not None:
        return f"{subject.entity_type.value}:{subject.repository}#{subject.number}"
    if subject.url:
        return f"{subject.entity_type.value}:{subject.url}"
    return None


def _to_subject(line: SubjectLine) -> Subject:
    return Subject(
        entity_type=line.type,
        repository=line.repository,
        title=line.title,
        url=line.url,
        number=line.number,
        opened_at=line.opened_at,
        author=line.author,
    )


class JsonLinesConnector:
    """Source connector backed by a JSON-lines event export."""

    def __init__(self, path: Path | str, *, name: str | None = None) -> None:
        """Store the file path and an optional display name."""
        self._path = Path(path)
        self._name = name or f"jsonl:{self._path.name}"
        self._decoder = msgspec.json.Decoder(EventLine)

    @property
    def name(self) -> str:
        """Return the connector name used in summaries."""
        return self._name

    async def fetch(self, window: ActivityWindow) -> list[RawEvent]:
        """Return every event in the file.

        The whole history is returned regardless of ``window`` so that
        intervals opened before the window are measured correctly.

        Raises
        ------
        SourceError
            If the file cannot be read or a line cannot be decoded.

        """
        try:
            content = await asyncio.to_thread(self._path.read_bytes)
        except OSError as exc:
            raise SourceError.unavailable(self._name, str(exc)) from exc
        events = self.parse(content)
        log_debug(
            logger,
            "Read %d events from %s for window starting %s",
            len(events),
            self._path,
            window.start.isoformat(),
        )
        return events

    def parse(self, content: bytes) -> list[RawEvent]:
        """Decode ``content`` into raw events in file order."""
        events: list[RawEvent] = []
        for line_no, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                decoded = self._decoder.decode(line)
            except msgspec.DecodeError as exc:
                raise SourceError.invalid_payload(
                    self._name, f"line {line_no}: {exc}"
                ) from exc
            subject = _to_subject(decoded.subject)
            entity_id = decoded.entity_id or default_entity_id(subject)
            if entity_id is None:
                raise SourceError.invalid_payload(
                    self._name, f"line {line_no}: entity_id cannot be derived"
                )
            events.append(
                RawEvent(
                    entity_id=entity_id,
                    kind=decoded.kind,
                    actor=decoded.actor,
                    occurred_at=decoded.occurred_at,
                    subject=subject,
                    payload=decoded.payload,
                )
            )
        return events
