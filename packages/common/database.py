"""
Database session management for SQLAlchemy with async support

The matching engine only reads the waste catalog; sessions are read-only
unless a caller (seeding, tests) asks otherwise. The engine issues catalog
queries concurrently and an AsyncSession must not be shared between tasks,
so every query opens its own session from the pool.
"""
import asyncio
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

# Pool settings for server databases; SQLite brings its own pool classes
SERVER_POOL_DEFAULTS: Dict[str, Any] = {
    "pool_size": 10,
    "max_overflow": 20,
    "pool_pre_ping": True,
    "pool_recycle": 3600,
}


def to_async_url(database_url: str) -> str:
    """postgresql:// → postgresql+asyncpg://, anything else unchanged"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


class DatabaseSessionManager:
    """Owns the async engine and hands out per-task sessions"""

    def __init__(self):
        self._engine = None
        self._sessionmaker = None
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._sessionmaker is not None

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name if self._engine is not None else ""

    async def init(self, database_url: str, **engine_kwargs):
        """Create the engine once; later calls are no-ops."""
        if self.initialized:
            return

        async with self._init_lock:
            if self.initialized:
                return

            database_url = to_async_url(database_url)
            kwargs: Dict[str, Any] = {"echo": False}
            if not database_url.startswith("sqlite"):
                kwargs.update(SERVER_POOL_DEFAULTS)
            kwargs.update(engine_kwargs)

            self._engine = create_async_engine(database_url, **kwargs)
            self._sessionmaker = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

    async def close(self):
        """Dispose the pool; the manager can be initialized again afterwards"""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    @asynccontextmanager
    async def session(self, readonly: bool = True) -> AsyncGenerator[AsyncSession, None]:
        """
        Open a session.

        Read-only sessions are rolled back on exit (and marked READ ONLY on
        PostgreSQL). Writable sessions must commit explicitly; anything left
        uncommitted is rolled back.
        """
        if not self.initialized:
            raise RuntimeError("DatabaseSessionManager not initialized")

        async with self._sessionmaker() as session:
            try:
                if readonly and self.dialect == "postgresql":
                    await session.execute(text("SET TRANSACTION READ ONLY"))
                yield session
            finally:
                await session.rollback()


# Global session manager instance
sessionmanager = DatabaseSessionManager()


async def ensure_initialized():
    """
    Initialize the global manager from DATABASE_URL if the app didn't.

    Used by operator scripts. SQL_ECHO=1 turns on statement logging.
    """
    if sessionmanager.initialized:
        return

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set and the database was not initialized")

    echo = os.getenv("SQL_ECHO", "0") in {"1", "true", "True"}
    await sessionmanager.init(database_url, echo=echo)
