"""Database connection and session management.

Provides the explicitly constructed ``Database`` handle that owns the async
SQLAlchemy engine and session factory. The application builds one handle
from settings at startup and passes it down; there is no module-level
engine.

Uses asyncpg for PostgreSQL and aiosqlite for local/test databases.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from mapping_portal.settings import Settings


class Database:
    """Store handle wrapping an async engine and its session factory.

    Usage:
        database = Database.from_settings(settings)
        async with database.transaction() as session:
            session.add(entity)
            # commit happens automatically on exit, rollback on error
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int | None = None,
        max_overflow: int | None = None,
        pool_timeout: int | None = None,
        pool_recycle: int | None = None,
        echo: bool = False,
    ):
        """Create the engine and session factory.

        Nothing connects until the first session is used.

        Args:
            url: SQLAlchemy async database URL
            pool_size: Connection pool size (ignored for SQLite)
            max_overflow: Extra connections above pool_size (ignored for SQLite)
            pool_timeout: Seconds to wait for a pooled connection (ignored for SQLite)
            pool_recycle: Seconds before a pooled connection is recycled (ignored for SQLite)
            echo: Log all SQL statements
        """
        engine_kwargs: dict[str, Any] = {"pool_pre_ping": True, "echo": echo}
        if not url.startswith("sqlite"):
            pool_options = {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_timeout": pool_timeout,
                "pool_recycle": pool_recycle,
            }
            engine_kwargs.update({k: v for k, v in pool_options.items() if v is not None})

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build a handle from application settings."""
        return cls(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            echo=settings.debug and settings.environment == "development",
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide an async database session with automatic cleanup.

        Yields:
            AsyncSession instance that is automatically closed.
        """
        session = self.session_factory()
        try:
            yield session
        finally:
            await session.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a session inside one atomic transaction.

        Commits when the block exits normally and rolls back when it raises.
        """
        async with self.session() as session:
            async with session.begin():
                yield session

    async def ping(self) -> None:
        """Verify connectivity by running a trivial statement."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """Create all tables (development and tests; production uses Alembic)."""
        import mapping_portal.storage.entities  # noqa: F401 - register models
        from mapping_portal.storage.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        """Drop all tables."""
        import mapping_portal.storage.entities  # noqa: F401 - register models
        from mapping_portal.storage.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()


__all__ = ["Database"]
