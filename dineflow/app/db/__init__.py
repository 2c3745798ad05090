"""Engine and session factory for the shared database.

The engine is created lazily from ``database_url`` so that tests can swap in
their own via :func:`create_test_session` before the first request.
"""

from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_settings

from ..models import Base
from ..obs import add_query_logger

engine: AsyncEngine | None = None
SessionLocal: sessionmaker | None = None


def _sessionmaker(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


def init_engine(url: str | None = None) -> AsyncEngine:
    """Create the module level engine and session factory."""

    global engine, SessionLocal
    engine = create_async_engine(url or get_settings().database_url, pool_pre_ping=True)
    add_query_logger(engine, "main")
    SessionLocal = _sessionmaker(engine)
    return engine


async def create_test_session() -> tuple[sessionmaker, AsyncEngine]:
    """Return a session factory and engine over a fresh in-memory database.

    A static pool keeps every connection on the same SQLite database.
    """

    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    add_query_logger(test_engine, "test")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return _sessionmaker(test_engine), test_engine


async def init_models() -> None:
    """Create missing tables on the configured engine without Alembic."""

    if engine is None:
        init_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""

    if SessionLocal is None:
        init_engine()
    async with SessionLocal() as session:
        yield session


__all__ = [
    "engine",
    "SessionLocal",
    "init_engine",
    "init_models",
    "create_test_session",
    "get_session",
]
