"""Shared error types for time handling."""

from __future__ import annotations


class TimezoneAwareRequiredError(ValueError):
    """Raised when datetime inputs lack timezone information."""

    def __init__(self, context: str) -> None:
        """Attach a consistent message for the failing context."""
        super().__init__(f"{context} must be timezone aware")

    @classmethod
    def for_occurrence(cls) -> TimezoneAwareRequiredError:
        """Return an error indicating occurred_at was naive."""
        return cls("occurred_at")

    @classmethod
    def for_bound(cls, name: str) -> TimezoneAwareRequiredError:
        """Return an error for a naive interval or window bound."""
        return cls(name)


class TimeExpressionError(ValueError):
    """Raised when a time phrase such as ``3 days ago`` cannot be parsed."""

    def __init__(self, expression: str) -> None:
        """Record the rejected expression for diagnostics."""
        self.expression = expression
        super().__init__(f"could not parse time expression: {expression!r}")
