"""Sync runs: configuration, orchestration, and observability."""

from __future__ import annotations

from .config import DEFAULT_DATABASE_URL, SyncConfig
from .errors import SyncConfigError
from .models import SourceOutcome, SyncSummary
from .observability import (
    ErrorCategory,
    SyncEventLogger,
    SyncEventType,
    categorize_error,
)
from .orchestrator import ConnectorOrchestrator, group_by_entity

__all__ = [
    "DEFAULT_DATABASE_URL",
    "ConnectorOrchestrator",
    "ErrorCategory",
    "SourceOutcome",
    "SyncConfig",
    "SyncConfigError",
    "SyncEventLogger",
    "SyncEventType",
    "SyncSummary",
    "categorize_error",
    "group_by_entity",
]
