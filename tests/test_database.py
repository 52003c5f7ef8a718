import asyncio

import pytest
from sqlalchemy import text
from sqlalchemy.pool import StaticPool

from packages.common.database import DatabaseSessionManager, to_async_url


def test_to_async_url():
    assert to_async_url("postgresql://u:p@db:5432/catalog") == "postgresql+asyncpg://u:p@db:5432/catalog"
    assert to_async_url("sqlite+aiosqlite://") == "sqlite+aiosqlite://"


def test_session_requires_init():
    manager = DatabaseSessionManager()

    async def open_session():
        async with manager.session():
            pass

    with pytest.raises(RuntimeError):
        asyncio.run(open_session())


def test_readonly_session_discards_writes():
    async def run():
        manager = DatabaseSessionManager()
        await manager.init("sqlite+aiosqlite://", poolclass=StaticPool)
        try:
            async with manager.session(readonly=False) as db:
                await db.execute(text("CREATE TABLE notes (body TEXT)"))
                await db.commit()
            async with manager.session() as db:
                await db.execute(text("INSERT INTO notes VALUES ('lost')"))
            async with manager.session() as db:
                return (await db.execute(text("SELECT count(*) FROM notes"))).scalar_one()
        finally:
            await manager.close()

    assert asyncio.run(run()) == 0
    assert DatabaseSessionManager().initialized is False
