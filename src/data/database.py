"""
Async database engine and session management.
"""

from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.config import get_settings
from src.data.models import Base

logger = structlog.get_logger()

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _is_memory_sqlite(database_url: str) -> bool:
    if not database_url.startswith("sqlite"):
        return False
    path = database_url.split("://", 1)[-1]
    return ":memory:" in path or path in ("", "/")


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine. In-memory SQLite shares one connection."""
    kwargs = {"echo": echo}
    if _is_memory_sqlite(database_url):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_async_engine(database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(engine: AsyncEngine) -> None:
    """Drop all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def init_db(database_url: Optional[str] = None) -> AsyncEngine:
    """Initialize the engine and session factory, creating tables if needed."""
    global _engine, _session_factory

    settings = get_settings()
    url = database_url or settings.database_url

    _engine = build_engine(url, echo=settings.database_echo)
    _session_factory = build_session_factory(_engine)
    await create_tables(_engine)

    logger.info("database_initialized", database_url=url.split("@")[-1])
    return _engine


async def close_db() -> None:
    """Dispose of the engine."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        logger.info("database_closed")
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session per request."""
    factory = get_session_factory()
    async with factory() as session:
        yield session
