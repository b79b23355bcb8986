"""Source connectors that feed raw events into the pipeline."""

from __future__ import annotations

from .errors import SourceError
from .git import CommitLogEntry, GitLogConnector, branch_name, parse_git_log
from .jsonl import EventLine, JsonLinesConnector, SubjectLine, default_entity_id
from .protocol import SourceConnector

__all__ = [
    "CommitLogEntry",
    "EventLine",
    "GitLogConnector",
    "JsonLinesConnector",
    "SourceConnector",
    "SourceError",
    "SubjectLine",
    "branch_name",
    "default_entity_id",
    "parse_git_log",
]
