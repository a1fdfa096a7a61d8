"""Async engine and session factory shared by the API and migrations.

SQLite (aiosqlite) serves development and tests; PostgreSQL (asyncpg) is the
production store and the only one that carries the social stored routines.
"""
from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from config.settings import settings


def async_url(url: str) -> str:
    """Point plain driver URLs at their async drivers."""
    for plain, driver in (
        ("postgresql://", "postgresql+asyncpg://"),
        ("postgres://", "postgresql+asyncpg://"),
        ("sqlite://", "sqlite+aiosqlite://"),
    ):
        if url.startswith(plain):
            return driver + url[len(plain):]
    return url


def engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"echo": False}
    # Production PostgreSQL pool settings
    return {
        "echo": False,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,  # Recycle connections every 30 min
        "pool_pre_ping": True,  # Verify connections before use
    }


DATABASE_URL = async_url(settings.DATABASE_URL)

engine = create_async_engine(DATABASE_URL, **engine_options(DATABASE_URL))

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Dependency for FastAPI — yields an async session."""
    async with async_session() as session:
        yield session
