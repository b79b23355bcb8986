"""Activity-layer error types."""

from __future__ import annotations


class ActivityValidationError(ValueError):
    """Raised when a record's metadata does not match its kind's schema."""

    def __init__(self, kind: str, detail: str) -> None:
        """Store the offending kind for programmatic handling."""
        self.kind = kind
        super().__init__(f"invalid metadata for {kind}: {detail}")
