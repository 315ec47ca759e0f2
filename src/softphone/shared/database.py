"""
Async SQLAlchemy engine, request-scoped sessions and savepoint helpers.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from softphone.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for every ORM model in the service."""


def utcnow() -> datetime:
    """Timezone-aware now, used for column defaults."""
    return datetime.now(timezone.utc)


@asynccontextmanager
async def best_effort(
    session: AsyncSession,
    logger: logging.Logger,
    message: str,
    **extra: Any,
) -> AsyncGenerator[None, None]:
    """Run the enclosed writes in a savepoint that may fail on its own.

    On error only the savepoint is rolled back; the error is logged with
    ``message`` and not re-raised, so the surrounding transaction (and the
    action being recorded) carries on.
    """
    try:
        async with session.begin_nested():
            yield
    except Exception:
        logger.exception(message, extra=extra)


class DatabaseManager:
    """Lazily builds one engine and session factory per database URL.

    Postgres gets a bounded pool; SQLite (tests, local dev) keeps the
    driver default because it rejects pool sizing arguments.
    """

    def __init__(self, database_url: str | None = None) -> None:
        self._database_url = database_url or get_settings().database_url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            options: dict[str, Any] = {"echo": get_settings().debug, "pool_pre_ping": True}
            if not self._database_url.startswith("sqlite"):
                options.update(pool_size=5, max_overflow=10)
            self._engine = create_async_engine(self._database_url, **options)
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine, expire_on_commit=False, autoflush=False
            )
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One unit of work: commit on success, roll back and re-raise on error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create every table of the service (no migrations)."""
        # Model modules register themselves on Base.metadata when imported.
        import softphone.accounts.models  # noqa: F401
        import softphone.contacts.models  # noqa: F401
        import softphone.history.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None


_manager: DatabaseManager | None = None


def get_database_manager() -> DatabaseManager:
    """Process-wide manager, created on first use."""
    global _manager
    if _manager is None:
        _manager = DatabaseManager()
    return _manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one committed-or-rolled-back session per request."""
    async with get_database_manager().session() as session:
        yield session


__all__ = [
    "Base",
    "utcnow",
    "best_effort",
    "DatabaseManager",
    "get_database_manager",
    "get_db_session",
]
