"""Storage-layer error types."""

from __future__ import annotations


class ActivityBatchWriteError(RuntimeError):
    """Raised when one chunk of an upsert batch fails.

    Chunks before the failing one stay committed; ``committed`` reports how
    many records they held. ``start`` and ``end`` give the half-open index
    range of the failed chunk within the de-duplicated batch.
    """

    def __init__(self, start: int, end: int, total: int, committed: int) -> None:
        """Record the failed range and the progress made before it."""
        self.start = start
        self.end = end
        self.total = total
        self.committed = committed
        super().__init__(
            f"failed to write records {start}-{end} of {total}; "
            f"{committed} committed by earlier chunks"
        )


class UnsupportedDialectError(RuntimeError):
    """Raised when the sink's database has no native upsert support here."""

    def __init__(self, dialect: str) -> None:
        """Name the dialect that cannot be written to."""
        self.dialect = dialect
        super().__init__(f"upsert is not supported for dialect {dialect!r}")


class NegativePaginationError(ValueError):
    """Raised when pagination parameters are negative."""

    def __init__(self, name: str) -> None:
        """Build a consistent error message for the invalid parameter."""
        super().__init__(f"{name} must be non-negative")
