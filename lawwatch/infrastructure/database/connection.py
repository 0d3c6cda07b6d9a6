"""
Async engine and session handling for the snapshot store.

PostgreSQL (asyncpg) in deployments; tests point ``DatabaseSettings.url`` at
an aiosqlite file instead.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from lawwatch.core.config import DatabaseSettings, settings
from lawwatch.core.logging_config import get_logger
from lawwatch.infrastructure.database.models import Base

logger = get_logger(__name__)


def _engine_options(config: DatabaseSettings, echo: bool) -> dict:
    options = {"echo": echo, "pool_pre_ping": config.pool_pre_ping}
    if config.async_database_url.startswith("sqlite"):
        return options
    return {
        **options,
        "pool_size": config.pool_size,
        "max_overflow": config.max_overflow,
        "pool_timeout": config.pool_timeout,
        "pool_recycle": config.pool_recycle,
    }


class DatabaseManager:
    """Owns one ``AsyncEngine`` and hands out unit-of-work sessions."""

    def __init__(self, config: Optional[DatabaseSettings] = None, echo: Optional[bool] = None):
        self.config = config or settings.database
        self.engine: AsyncEngine = create_async_engine(
            self.config.async_database_url,
            **_engine_options(self.config, settings.debug if echo is None else echo)
        )
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        logger.info("Snapshot store engine created", extra={"dialect": self.engine.dialect.name})

    async def create_tables(self) -> None:
        """Create any missing LawWatch tables; existing tables are left untouched."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Snapshot store tables ready", extra={"tables": sorted(Base.metadata.tables)})

    async def check_connection(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Snapshot store unreachable: {e}")
            return False
        return True

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Commit when the block exits normally, roll back if it raises."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Snapshot store connections closed")


__all__ = ['DatabaseManager']
