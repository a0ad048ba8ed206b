from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from leave_core.config import get_settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine for ``database_url``.

    SQLite URLs get a single shared connection so an in-memory database
    survives across sessions.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it from settings on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url, echo=settings.debug)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory.

    Objects stay loaded after commit so services can build responses from them.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding one session per HTTP request."""
    async with get_session_factory()() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def create_db_and_tables(engine: AsyncEngine | None = None) -> None:
    """Create missing leave tables (users, leave_requests, leave_balances, audit_logs, notifications)."""
    import leave_core.models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose the engine on shutdown; the next get_engine() call builds a fresh one."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
