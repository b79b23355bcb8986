"""Contract every activity source implements."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from tallyman.common import ActivityWindow
    from tallyman.timeline import RawEvent


class SourceConnector(typ.Protocol):
    """Supplies raw events for one data source.

    ``fetch`` may raise :class:`~tallyman.connectors.errors.SourceError` or
    any other exception; the orchestrator isolates failures per source.
    Timestamps must be timezone aware. Connectors that track entity state
    should return each entity's full event history, not only the events
    inside ``window``, so status durations can be reconstructed.
    """

    @property
    def name(self) -> str:
        """Return a stable identifier used in logs and summaries."""
        ...

    async def fetch(self, window: ActivityWindow) -> cabc.Sequence[RawEvent]:
        """Return the raw events relevant to ``window``."""
        ...
