"""Async engine, session factory and schema creation for the period engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from period_engine.config import get_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def engine_options(url: str) -> dict[str, Any]:
    """Pool settings for a database URL.

    SQLite (aiosqlite) runs on a single-connection pool and takes no sizing
    arguments; server databases get a pre-pinged, bounded pool.
    """
    if make_url(url).get_backend_name() == "sqlite":
        return {}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


def init_db() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create the engine and session factory on first use.

    Sessions do not expire on commit, so a status row returned by a processor
    operation stays readable after the operation's own commit.
    """
    global _engine, _session_factory
    if _engine is None:
        url = get_settings().database_url
        _engine = create_async_engine(url, **engine_options(url))
        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created for %s", make_url(url).render_as_string())
    assert _session_factory is not None
    return _engine, _session_factory


async def create_schema() -> None:
    """Create any missing tables from the ORM metadata."""
    from period_engine.models import Base

    engine, _ = init_db()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready (%d tables)", len(Base.metadata.tables))


async def dispose_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """One unit of work outside a request: commit on success, else roll back."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
