"""Sync configuration error types."""

from __future__ import annotations


class SyncConfigError(ValueError):
    """Raised when sync settings read from the environment are invalid."""

    @classmethod
    def not_an_integer(cls, env_var: str, raw: str) -> SyncConfigError:
        """Return an error for a non-integer value."""
        return cls(f"{env_var} must be an integer, got: {raw!r}")

    @classmethod
    def not_a_number(cls, env_var: str, raw: str) -> SyncConfigError:
        """Return an error for a non-numeric value."""
        return cls(f"{env_var} must be a number, got: {raw!r}")

    @classmethod
    def not_positive(cls, name: str, value: float) -> SyncConfigError:
        """Return an error for a zero or negative value."""
        return cls(f"{name} must be positive, got: {value}")
