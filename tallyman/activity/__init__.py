"""Normalized activity records, metadata schemas, and dedupe keys."""

from __future__ import annotations

from .errors import ActivityValidationError
from .keys import MAX_KEY_BYTES, make_dedupe_key, short_hash, subject_id
from .metadata import (
    METADATA_SCHEMAS,
    CommentMetadata,
    CommitMetadata,
    CreatedMetadata,
    HistoryMetadata,
    ReviewMetadata,
    validate_metadata,
)
from .models import ActivityKind, ActivityRecord, Metadata, MetadataValue
from .normalizer import ActivityNormalizer
from .reviews import CHANGES_REQUESTED, ReviewBlock, derive_review_block

__all__ = [
    "CHANGES_REQUESTED",
    "MAX_KEY_BYTES",
    "METADATA_SCHEMAS",
    "ActivityKind",
    "ActivityNormalizer",
    "ActivityRecord",
    "ActivityValidationError",
    "CommentMetadata",
    "CommitMetadata",
    "CreatedMetadata",
    "HistoryMetadata",
    "Metadata",
    "MetadataValue",
    "ReviewBlock",
    "ReviewMetadata",
    "derive_review_block",
    "make_dedupe_key",
    "short_hash",
    "subject_id",
    "validate_metadata",
]
