"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tallyman.storage import init_activity_storage
from tallyman.worktime import WorkingCalendar

if typ.TYPE_CHECKING:
    from pathlib import Path


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine and initialise the activity store."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tallyman_test.db'}")
    try:
        await init_activity_storage(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = await _setup_sqlite(tmp_path)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def calendar() -> WorkingCalendar:
    """Return the default Monday-Friday, 09:00-17:00 UTC calendar."""
    return WorkingCalendar()


@pytest.fixture(autouse=True)
def _clear_tallyman_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host configuration out of tests."""
    for name in (
        "TALLYMAN_DATABASE_URL",
        "TALLYMAN_BATCH_SIZE",
        "TALLYMAN_MAX_CONCURRENT_SOURCES",
        "TALLYMAN_SOURCE_TIMEOUT_S",
        "TALLYMAN_WORKING_START_HOUR",
        "TALLYMAN_WORKING_END_HOUR",
        "TALLYMAN_WORKING_DAYS",
        "TALLYMAN_HOLIDAYS",
        "TALLYMAN_TIMEZONE",
        "TALLYMAN_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
