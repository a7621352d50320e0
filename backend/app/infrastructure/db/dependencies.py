"""
Dependency Injection Providers for Score Portal

Provides FastAPI dependencies for database sessions and repositories.
Routes depend on IScoreRepository so tests can swap in another implementation.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.database import get_session
from app.infrastructure.db.repositories import IScoreRepository, ScoreRepository


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_score_repository(
    session: SessionDep,
) -> AsyncGenerator[IScoreRepository, None]:
    """
    Dependency provider for the score repository.

    Usage:
        @router.get("/tests")
        async def list_tests(repo: ScoreRepoDep):
            ...
    """
    yield ScoreRepository(session)


ScoreRepoDep = Annotated[IScoreRepository, Depends(get_score_repository)]
