"""
Database engine and session factory.

The engine (and its connection pool) is the only process-wide state; services
receive a fresh AsyncSession per request.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rewards_engine.config.settings import settings


def create_engine(url: str | None = None) -> AsyncEngine:
    """Create async engine with pooled connections."""
    return create_async_engine(
        url or settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        pool_pre_ping=True,
    )


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


_session_maker: async_sessionmaker[AsyncSession] | None = None


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the lazily created session maker."""
    global _session_maker
    if _session_maker is None:
        _session_maker = create_session_maker()
    return _session_maker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Provide a session for one request/response unit.

    Usage:
        async with get_session() as session:
            ledger = ReferralLedger(session)
            await ledger.track_referral(referrer_id, referred_id)
    """
    async with get_session_maker()() as session:
        yield session
