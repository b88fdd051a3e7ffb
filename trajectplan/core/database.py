"""Async database engine, the request session dependency and startup helpers."""

import time
from collections.abc import AsyncGenerator
from typing import Any, Dict, List

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from trajectplan.core.config import DatabaseSettings, settings
from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base of the autofill tables."""


def build_engine(db: DatabaseSettings) -> AsyncEngine:
    return create_async_engine(
        db.connection_url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        echo=db.echo,
        pool_pre_ping=True,
        # PgBouncer (Supabase pooler) does not support prepared statement caching
        connect_args={"statement_cache_size": 0},
    )


engine = build_engine(settings.db)
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with async_session_maker() as session:
        yield session


class DatabaseClient:
    """Startup checks and health reporting for the autofill database."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def create_tables(self) -> List[str]:
        """Create the autofill tables that do not exist yet.

        Returns:
            Names of the tables that were created
        """
        # Registers the models on Base.metadata
        from trajectplan.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            existing = set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))
            await conn.run_sync(Base.metadata.create_all)

        created = [name for name in Base.metadata.tables if name not in existing]
        LOGGER.info("Database tables verified", extra={"created": created or "none"})
        return created

    async def health_check(self) -> Dict[str, Any]:
        """Round-trip ``SELECT 1``; never raises."""
        started = time.perf_counter()
        try:
            async with self.engine.connect() as conn:
                await conn.scalar(text("SELECT 1"))
        except Exception as e:
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "error": str(e)}

        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        }

    async def dispose(self) -> None:
        await self.engine.dispose()
        LOGGER.info("Database connection pool closed")


db_client = DatabaseClient(engine)


async def init_database(create_tables: bool = True) -> None:
    """Verify connectivity and optionally create missing tables.

    Raises:
        Exception: Connection or DDL errors propagate to the caller
    """
    LOGGER.info("Initializing database connection...")
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    if create_tables:
        await db_client.create_tables()
    LOGGER.info("Database initialization completed")


async def close_database() -> None:
    await db_client.dispose()
