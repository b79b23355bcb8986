"""Configuration for sync runs.

Usage
-----
Create a configuration with defaults:

>>> config = SyncConfig()
>>> config.batch_size
100

Or load from environment variables:

>>> import os
>>> os.environ["TALLYMAN_BATCH_SIZE"] = "50"
>>> SyncConfig.from_env().batch_size
50

"""

from __future__ import annotations

import dataclasses as dc
import os

from .errors import SyncConfigError

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///tallyman.db"


@dc.dataclass(frozen=True, slots=True)
class SyncConfig:
    """Settings shared by every sync run in a process.

    Attributes
    ----------
    database_url
        SQLAlchemy async URL of the activity store.
    batch_size
        Records per upsert statement. Default is 100.
    max_concurrent_sources
        Upper bound on connectors fetched at the same time. Default is 4.
    source_timeout_s
        Seconds a single connector may spend fetching before it is
        abandoned. Default is 60.

    """

    database_url: str = DEFAULT_DATABASE_URL
    batch_size: int = 100
    max_concurrent_sources: int = 4
    source_timeout_s: float = 60.0

    def __post_init__(self) -> None:
        """Reject non-positive limits."""
        if self.batch_size < 1:
            raise SyncConfigError.not_positive("batch_size", self.batch_size)
        if self.max_concurrent_sources < 1:
            raise SyncConfigError.not_positive(
                "max_concurrent_sources", self.max_concurrent_sources
            )
        if self.source_timeout_s <= 0:
            raise SyncConfigError.not_positive(
                "source_timeout_s", self.source_timeout_s
            )

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise SyncConfigError.not_an_integer(env_var, raw) from exc
        if value < 1:
            raise SyncConfigError.not_positive(env_var, value)
        return value

    @staticmethod
    def _parse_positive_float(env_var: str, default: float) -> float:
        """Read a positive number env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            raise SyncConfigError.not_a_number(env_var, raw) from exc
        if value <= 0:
            raise SyncConfigError.not_positive(env_var, value)
        return value

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Create configuration from environment variables.

        Reads ``TALLYMAN_DATABASE_URL``, ``TALLYMAN_BATCH_SIZE``,
        ``TALLYMAN_MAX_CONCURRENT_SOURCES`` and ``TALLYMAN_SOURCE_TIMEOUT_S``.
        Unset or blank variables keep their defaults.

        Raises
        ------
        SyncConfigError
            If a numeric variable is malformed or not positive.

        """
        database_url = (
            os.environ.get("TALLYMAN_DATABASE_URL", "").strip() or DEFAULT_DATABASE_URL
        )
        return cls(
            database_url=database_url,
            batch_size=cls._parse_positive_int("TALLYMAN_BATCH_SIZE", 100),
            max_concurrent_sources=cls._parse_positive_int(
                "TALLYMAN_MAX_CONCURRENT_SOURCES", 4
            ),
            source_timeout_s=cls._parse_positive_float(
                "TALLYMAN_SOURCE_TIMEOUT_S", 60.0
            ),
        )
