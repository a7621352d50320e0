"""
Base Repository for Score Portal

Session-bound repository base. Every statement goes through ``_execute``
so driver failures surface as StorageError with the operation and table
attached, never as raw SQLAlchemy exceptions.
"""

import logging
from typing import Any, Iterator, List, Sequence, TypeVar

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.exceptions import StorageError


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Rows per multi-row INSERT; PostgreSQL caps a statement at 32767 bind parameters
INSERT_BATCH_SIZE = 1000


def chunked(items: Sequence[T], size: int = INSERT_BATCH_SIZE) -> Iterator[List[T]]:
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


class SessionRepository:
    """
    Base class for repositories working on one async session.

    Args:
        session: Async database session (one per request)
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        return self._session

    @property
    def dialect_name(self) -> str:
        """Name of the bound database dialect (postgresql, sqlite)."""
        return self._session.get_bind().dialect.name

    def insert(self, model: Any):
        """
        Dialect-specific INSERT supporting ON CONFLICT clauses.

        PostgreSQL in production; SQLite for local runs.
        """
        if self.dialect_name == "sqlite":
            return sqlite_insert(model)
        return pg_insert(model)

    async def _execute(self, statement: Any, operation: str, table: str):
        """
        Execute a statement, translating driver errors.

        Raises:
            StorageError: on any SQLAlchemy failure
        """
        try:
            return await self._session.execute(statement)
        except SQLAlchemyError as e:
            logger.error(f"[STORAGE] {operation} on {table} failed: {e}")
            raise StorageError(
                f"Database {operation} failed",
                operation=operation,
                table=table,
                original_error=e,
            ) from e

    async def commit(self) -> None:
        """Commit the current transaction."""
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            logger.error(f"[STORAGE] commit failed: {e}")
            await self._session.rollback()
            raise StorageError(
                "Database commit failed",
                operation="commit",
                original_error=e,
            ) from e
