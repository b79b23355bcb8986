"""Source connector error types."""

from __future__ import annotations


class SourceError(RuntimeError):
    """Raised when a source connector cannot deliver events for a window."""

    def __init__(self, source: str, message: str, *, reason: str) -> None:
        """Attach the failing source and a short machine-readable reason."""
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {message}")

    @classmethod
    def timeout(cls, source: str, seconds: float) -> SourceError:
        """Return an error for a fetch that exceeded its deadline."""
        return cls(source, f"fetch timed out after {seconds:g}s", reason="timeout")

    @classmethod
    def unavailable(cls, source: str, detail: str) -> SourceError:
        """Return an error for a source that could not be reached or read."""
        return cls(source, f"source unavailable: {detail}", reason="unavailable")

    @classmethod
    def invalid_payload(cls, source: str, detail: str) -> SourceError:
        """Return an error for data that does not match the expected shape."""
        return cls(source, f"invalid payload: {detail}", reason="invalid_payload")
