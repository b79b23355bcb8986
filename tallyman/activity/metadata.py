"""Typed metadata schemas, one per activity kind.

Metadata is stored as a flat JSON object, but each kind has a documented key
set. The normalizer validates every record against its schema so downstream
consumers can rely on the keys for a given ``kind``.
"""

from __future__ import annotations

import typing as typ

import msgspec

from .errors import ActivityValidationError
from .models import ActivityKind

if typ.TYPE_CHECKING:
    from .models import Metadata


class _MetadataStruct(
    msgspec.Struct, frozen=True, kw_only=True, forbid_unknown_fields=True
):
    """Shared configuration for metadata schemas."""


class HistoryMetadata(_MetadataStruct, kw_only=True):
    """Status, label, assignment, and open/close transitions."""

    number: int | None = None
    action: str
    value: str | None = None
    previous_value: str | None = None
    duration_ms: int | None = None


class CreatedMetadata(HistoryMetadata, kw_only=True):
    """Entity creation; review fields are only set for pull requests."""

    lifetime_ms: int | None = None
    request_changes_active: bool | None = None
    requested_changes_by: str | None = None


class CommentMetadata(_MetadataStruct, kw_only=True):
    """A comment on an issue or pull request."""

    number: int | None = None
    comment_id: str | None = None
    body_hash: str


class ReviewMetadata(_MetadataStruct, kw_only=True):
    """A pull-request review with the PR's blocking state."""

    number: int | None = None
    state: str
    review_id: str | None = None
    request_changes_active: bool = False
    requested_changes_by: str | None = None


class CommitMetadata(_MetadataStruct, kw_only=True):
    """A commit with diff statistics."""

    hash: str
    email: str | None = None
    branch: str | None = None
    lines_added: int = 0
    lines_removed: int = 0
    is_fork: bool = False


METADATA_SCHEMAS: dict[ActivityKind, type[msgspec.Struct]] = {
    ActivityKind.COMMIT: CommitMetadata,
    ActivityKind.ISSUE_CREATED: CreatedMetadata,
    ActivityKind.PR_CREATED: CreatedMetadata,
    ActivityKind.ISSUE_COMMENT: CommentMetadata,
    ActivityKind.PR_COMMENT: CommentMetadata,
    ActivityKind.PR_REVIEW: ReviewMetadata,
    **{kind: HistoryMetadata for kind in ActivityKind if kind.is_history},
}


def validate_metadata(kind: ActivityKind, raw: dict[str, typ.Any]) -> Metadata:
    """Validate ``raw`` against the schema for ``kind`` and return plain data.

    Keys whose value is None are omitted from the result.

    Raises
    ------
    ActivityValidationError
        If a required key is missing, a value has the wrong type, or an
        undocumented key is present.

    """
    schema = METADATA_SCHEMAS[kind]
    try:
        decoded = msgspec.convert(
            {key: value for key, value in raw.items() if value is not None},
            type=schema,
            strict=True,
        )
    except msgspec.ValidationError as exc:
        raise ActivityValidationError(kind, str(exc)) from exc
    builtins = typ.cast("dict[str, typ.Any]", msgspec.to_builtins(decoded))
    return {key: value for key, value in builtins.items() if value is not None}
