"""Deterministic identity keys for activity records.

A key is a pure function of a record's semantic identity: its kind, author,
occurrence time truncated to whole seconds in UTC, repository, and a
kind-specific discriminator. Overlapping ingestion runs therefore produce
byte-identical keys for the same logical event.
"""

from __future__ import annotations

import hashlib
import typing as typ

from tallyman.common.time import isoformat_seconds

from .models import ActivityKind

if typ.TYPE_CHECKING:
    from .models import ActivityRecord

MAX_KEY_BYTES = 500
_DISCRIMINATOR_DIGEST_LENGTH = 32


def short_hash(text: str, length: int = 8) -> str:
    """Return the first ``length`` hex characters of ``text``'s SHA-256."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def subject_id(record: ActivityRecord) -> str:
    """Return the subject number, or a hash of its URL or title."""
    number = record.metadata.get("number")
    if number is not None:
        return str(number)
    return short_hash(record.url or record.title)


def _discriminator(record: ActivityRecord) -> str:
    kind = record.kind
    if kind is ActivityKind.COMMIT:
        return str(record.metadata["hash"])
    subject = subject_id(record)
    if kind.is_created:
        return f"{subject}:created"
    if kind is ActivityKind.PR_REVIEW:
        return f"{subject}:review:{record.metadata['state']}"
    if kind.is_comment:
        stamp = isoformat_seconds(record.occurred_at)
        return f"{subject}:comment:{short_hash(f'{stamp}|{record.description}', 12)}"
    action = record.metadata["action"]
    value = record.metadata.get("value")
    if value is None:
        return f"{subject}:{action}"
    return f"{subject}:{action}:{short_hash(str(value))}"


def _fits(key: str) -> bool:
    return len(key.encode("utf-8")) <= MAX_KEY_BYTES


def make_dedupe_key(record: ActivityRecord) -> str:
    """Return the dedupe key for ``record``, at most 500 UTF-8 bytes.

    When the natural key is too long the discriminator is replaced by a
    32-character digest; if the remaining prefix still overflows, the whole
    key collapses to ``kind:sha256(key)``.

    Raises
    ------
    TimezoneAwareRequiredError
        If ``record.occurred_at`` is naive.

    """
    prefix = ":".join(
        (
            record.kind.value,
            record.author,
            isoformat_seconds(record.occurred_at),
            record.repository,
        )
    )
    discriminator = _discriminator(record)
    key = f"{prefix}:{discriminator}"
    if _fits(key):
        return key
    shortened = (
        f"{prefix}:{short_hash(discriminator, _DISCRIMINATOR_DIGEST_LENGTH)}"
    )
    if _fits(shortened):
        return shortened
    return f"{record.kind.value}:{short_hash(key, 64)}"
