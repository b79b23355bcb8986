"""Derive whether a pull request is blocked by requested changes."""

from __future__ import annotations

import dataclasses
import typing as typ

from tallyman.timeline import normalise_review_state

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from tallyman.timeline import ReviewInput

CHANGES_REQUESTED = "changes_requested"
_CLEARING_STATES = frozenset({"approved", "commented", "dismissed"})


@dataclasses.dataclass(frozen=True, slots=True)
class ReviewBlock:
    """Blocking state of a pull request's reviews.

    Attributes
    ----------
    active
        True when at least one reviewer's latest decisive review requests
        changes.
    requested_by
        The reviewer who most recently requested changes and still blocks.

    """

    active: bool = False
    requested_by: str | None = None


def derive_review_block(
    reviews: cabc.Iterable[ReviewInput], *, before: dt.datetime | None = None
) -> ReviewBlock:
    """Return the review block implied by ``reviews``.

    Reviews are considered in time order with arrival order as the tiebreak.
    Only reviews strictly earlier than ``before`` count when it is given.
    ``pending`` and unrecognised states leave a reviewer's standing unchanged.
    """
    ordered = sorted(
        (review for review in reviews if before is None or review.when < before),
        key=lambda review: review.when,
    )
    standing: dict[str, ReviewInput] = {}
    for review in ordered:
        state = normalise_review_state(review.state)
        if state == CHANGES_REQUESTED:
            standing[review.actor] = review
        elif state in _CLEARING_STATES:
            standing.pop(review.actor, None)

    if not standing:
        return ReviewBlock()
    latest = sorted(standing.values(), key=lambda review: review.when)[-1]
    return ReviewBlock(active=True, requested_by=latest.actor)
