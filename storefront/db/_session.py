"""
Database setup.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from storefront.db._models import Base

type SessionFactory = async_sessionmaker[AsyncSession]


async def create_database(
    url: str = "sqlite+aiosqlite:///./storefront.db",
    **engine_options: Any,
) -> tuple[SessionFactory, AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False, **engine_options)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = ("SessionFactory", "create_database")
