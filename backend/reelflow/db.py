"""
Async database plumbing: engine, session factory and the declarative Base
shared by the workflow tables. get_session() is the FastAPI dependency
every route session comes from (tests override it).
"""
from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .settings import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    """Declarative base for the team, content item, assignment and event tables."""


def make_engine(url: str) -> AsyncEngine:
    """Engine for the workflow database. Postgres pools get a pre-ping; SQLite has no pool to check."""
    if url.startswith("sqlite"):
        return create_async_engine(url, future=True, echo=False)
    return create_async_engine(url, future=True, echo=False, pool_pre_ping=True)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Items are handed back after commit, so keep them loaded
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = make_engine(settings.async_database_url)
AsyncSessionLocal = make_session_factory(engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session
