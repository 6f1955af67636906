"""Persistence: async engine, session factory, and Base for SQLAlchemy ORM.

Database wraps one engine and its session factory. It is created by the
AppContext (never at import time) so tests can point it at an in-memory
SQLite engine. SQLite databases get their schema from create_all() at
startup; every other database is migrated with `alembic upgrade head`.

Use session() for reads and transaction() for writes; transaction()
commits on success and rolls back on exception.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.core.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the async engine for DATABASE_URL with pool options per driver."""
    url = settings.database_url
    kwargs: dict[str, Any] = {"echo": settings.database_echo}
    if url.startswith("sqlite"):
        if ":memory:" in url or url.endswith("sqlite+aiosqlite://"):
            # One shared connection so every session sees the same in-memory database.
            kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_recycle"] = 3600
        kwargs["pool_size"] = settings.db_pool_size if settings.db_pool_size is not None else 10
        kwargs["max_overflow"] = (
            settings.db_max_overflow if settings.db_max_overflow is not None else 20
        )
    return create_async_engine(url, **kwargs)


class Database:
    """Engine + session factory with read and transactional session scopes."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(create_engine_from_settings(settings))

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    async def create_all(self) -> None:
        """Create all tables registered on Base (idempotent)."""
        # Importing the package registers every model on Base.metadata.
        import app.infrastructure.persistence.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready")

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session for read operations. Does not commit."""
        async with self.session_factory() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Session inside a transaction: commits on success, rolls back on exception."""
        async with self.session_factory() as session:
            async with session.begin():
                yield session
