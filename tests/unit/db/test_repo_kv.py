"""Tests for key-value store operations."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ztgate.db.base import BaseEntity
from ztgate.db.repo_kv import get_value, put_value


@pytest.fixture
async def shared_factory(
    tmp_path: Path,
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory over one on-disk database, for cross-session writes."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


class TestGetValue:
    """Tests for get_value."""

    async def test_returns_none_when_absent(self, db_session: AsyncSession) -> None:
        assert await get_value(db_session, "missing") is None

    async def test_returns_stored_json(self, db_session: AsyncSession) -> None:
        await put_value(db_session, "k", {"a": [1, 2], "b": {"c": None}})
        assert await get_value(db_session, "k") == {"a": [1, 2], "b": {"c": None}}


class TestPutValue:
    """Tests for put_value."""

    async def test_overwrites_previous_value(self, db_session: AsyncSession) -> None:
        await put_value(db_session, "k", {"old": True})
        await put_value(db_session, "k", {"new": True})
        assert await get_value(db_session, "k") == {"new": True}

    async def test_keys_are_independent(self, db_session: AsyncSession) -> None:
        await put_value(db_session, "a", 1)
        await put_value(db_session, "b", 2)
        assert await get_value(db_session, "a") == 1
        assert await get_value(db_session, "b") == 2

    async def test_survives_commit(self, db_session: AsyncSession) -> None:
        await put_value(db_session, "k", ["x"])
        await db_session.commit()
        assert await get_value(db_session, "k") == ["x"]


class TestConcurrentWriters:
    """Two sessions that both saw a missing key and then both write it."""

    async def test_last_write_wins(
        self, shared_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with shared_factory() as first, shared_factory() as second:
            assert await get_value(first, "k") is None
            assert await get_value(second, "k") is None

            await put_value(first, "k", {"writer": "first"})
            await first.commit()
            await put_value(second, "k", {"writer": "second"})
            await second.commit()

        async with shared_factory() as reader:
            assert await get_value(reader, "k") == {"writer": "second"}

    async def test_stale_reader_sees_overwrite(
        self, shared_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with shared_factory() as first, shared_factory() as second:
            await put_value(first, "k", 1)
            await first.commit()
            assert await get_value(second, "k") == 1
            await second.commit()

            await put_value(first, "k", 2)
            await first.commit()
            assert await get_value(second, "k") == 2
