"""
Database Configuration for Score Portal

Async SQLAlchemy engine and session management. One engine (connection
pool) per process; one session per request or script run.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config.settings import Settings, settings
from app.infrastructure.exceptions import ConfigurationError, StorageError

logger = logging.getLogger(__name__)


def engine_options(config: Settings) -> Dict[str, Any]:
    """Keyword arguments for create_async_engine; sqlite has no pool tuning."""
    options: Dict[str, Any] = {"echo": config.database_echo}
    if config.database_url and not config.database_url.startswith("sqlite"):
        options.update(
            pool_size=config.database_pool_size,
            max_overflow=config.database_max_overflow,
            pool_timeout=config.database_pool_timeout,
            pool_pre_ping=True,
        )
    return options


class DatabaseManager:
    """Owns the engine and session factory, both built on first use."""

    def __init__(self, config: Settings = settings):
        self._config = config
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._connect()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._connect()
        return self._session_factory

    def _connect(self) -> None:
        if not self._config.database_url:
            raise ConfigurationError(
                "DATABASE_URL is required for database access",
                missing_keys=["DATABASE_URL"],
            )

        self._engine = create_async_engine(
            self._config.database_url, **engine_options(self._config)
        )
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on any error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StorageError(
                "Database is unreachable", operation="connect", original_error=e
            )

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


# Process-wide instance (lazy initialization)
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with get_db_manager().session_scope() as session:
        yield session


def get_session_context():
    """
    Session scope for code outside FastAPI requests.

    Usage:
        async with get_session_context() as session:
            repo = ScoreRepository(session)
    """
    return get_db_manager().session_scope()


async def init_db() -> None:
    """Verify the database answers (called on app startup)."""
    await get_db_manager().ping()
    logger.info("[DB] Connection pool ready")


async def close_db() -> None:
    """Dispose of the connection pool (called on app shutdown)."""
    await get_db_manager().close()
