"""Unit tests for pull-request review blocking."""

from __future__ import annotations

from tallyman.activity import ReviewBlock, derive_review_block
from tallyman.timeline import ReviewInput
from tests.helpers.events import utc


def _review(actor: str, hour: int, state: str) -> ReviewInput:
    return ReviewInput(actor=actor, when=utc(2024, 3, 5, hour), state=state)


def test_later_approval_clears_block() -> None:
    """A requests changes then approves; B never reviews: not blocked."""
    block = derive_review_block(
        [_review("a", 10, "changes_requested"), _review("a", 11, "approved")]
    )
    assert block == ReviewBlock()
    assert not block.active


def test_other_reviewer_blocks_after_approval() -> None:
    """A approves then B requests changes: blocked and attributed to B."""
    block = derive_review_block(
        [_review("a", 10, "approved"), _review("b", 11, "changes_requested")]
    )
    assert block.active
    assert block.requested_by == "b"


def test_comment_and_dismissal_clear_but_pending_does_not() -> None:
    """Commented and dismissed reviews clear a block; pending is ignored."""
    block = derive_review_block(
        [
            _review("a", 9, "changes_requested"),
            _review("a", 10, "commented"),
            _review("b", 9, "changes_requested"),
            _review("b", 10, "dismissed"),
            _review("c", 9, "changes_requested"),
            _review("c", 10, "pending"),
        ]
    )
    assert block == ReviewBlock(active=True, requested_by="c")


def test_latest_blocking_reviewer_is_reported() -> None:
    """With several blockers the most recent request is attributed."""
    block = derive_review_block(
        [
            _review("late", 14, "CHANGES_REQUESTED"),
            _review("early", 9, "request_changes"),
        ]
    )
    assert block.requested_by == "late"


def test_reviews_after_cutoff_are_ignored() -> None:
    """Only reviews strictly before the cutoff count."""
    reviews = [_review("a", 10, "changes_requested"), _review("a", 12, "approved")]
    assert derive_review_block(reviews, before=utc(2024, 3, 5, 12)).active
    assert not derive_review_block(reviews, before=utc(2024, 3, 5, 13)).active
