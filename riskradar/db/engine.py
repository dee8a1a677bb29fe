"""
Database engine, session factory, and declarative base for RiskRadar.

Uses async SQLAlchemy 2.0 (asyncpg in production, aiosqlite in dev/tests).
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from riskradar.config import settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for RiskRadar models."""

    pass


# Lazy-initialized singletons
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine_for(
    url: str,
    pool_size: Optional[int] = None,
    max_overflow: Optional[int] = None,
    **overrides,
) -> AsyncEngine:
    """Build an async engine; SQLite gets no pool sizing arguments."""
    kwargs = {"echo": settings.debug}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=pool_size or settings.db_pool_size,
            max_overflow=max_overflow if max_overflow is not None else settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle,
        )
    kwargs.update(overrides)
    return create_async_engine(url, **kwargs)


def get_engine() -> AsyncEngine:
    """Get or create the async database engine."""
    global _engine
    if _engine is None:
        _engine = create_engine_for(settings.async_database_url)
        logger.info("database_engine_created")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session with commit/rollback handling."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Initialize the engine and, in development, create tables from models."""
    engine = get_engine()

    # Import all models so Base.metadata is populated
    import riskradar.db.models  # noqa: F401

    if settings.environment.lower() == "development":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("tables_created", mode="development")
    else:
        logger.info("skipping_auto_create", reason="schema managed externally")

    logger.info("database_initialized")


async def close_db() -> None:
    """Dispose of the engine (call at shutdown)."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("database_closed")
