"""Unit tests for per-kind metadata validation."""

from __future__ import annotations

import pytest

from tallyman.activity import (
    METADATA_SCHEMAS,
    ActivityKind,
    ActivityValidationError,
    validate_metadata,
)


def test_every_kind_has_a_schema() -> None:
    """The schema table covers the closed set of kinds."""
    assert set(METADATA_SCHEMAS) == set(ActivityKind)


def test_none_values_are_omitted() -> None:
    """Optional keys left as None do not appear in stored metadata."""
    assert validate_metadata(
        ActivityKind.ISSUE_LABELING,
        {"number": 7, "action": "labeled", "value": "bug", "previous_value": None},
    ) == {"number": 7, "action": "labeled", "value": "bug"}


def test_commit_defaults_are_kept() -> None:
    """Falsy commit statistics are stored, not dropped."""
    assert validate_metadata(ActivityKind.COMMIT, {"hash": "abc"}) == {
        "hash": "abc",
        "lines_added": 0,
        "lines_removed": 0,
        "is_fork": False,
    }


def test_review_blocking_flag_is_always_present() -> None:
    """Review metadata always reports whether changes are requested."""
    metadata = validate_metadata(
        ActivityKind.PR_REVIEW, {"number": 1, "state": "approved"}
    )
    assert metadata["request_changes_active"] is False


@pytest.mark.parametrize(
    ("kind", "raw"),
    [
        (ActivityKind.PR_REVIEW, {"number": 1}),
        (ActivityKind.COMMIT, {"hash": "abc", "lines_added": "3"}),
        (ActivityKind.PR_COMMENT, {"body_hash": "x", "sentiment": "happy"}),
        (ActivityKind.ISSUE_ASSIGNMENT, {"action": "assigned", "duration_ms": 1.5}),
    ],
)
def test_invalid_metadata_is_rejected(
    kind: ActivityKind, raw: dict[str, object]
) -> None:
    """Missing keys, wrong types, and undocumented keys all fail."""
    with pytest.raises(ActivityValidationError) as excinfo:
        validate_metadata(kind, raw)
    assert excinfo.value.kind == kind
