"""
Repository Layer for Score Portal

Exports repository classes for dependency injection.
"""

from app.infrastructure.db.repositories.base_repository import SessionRepository
from app.infrastructure.db.repositories.score_repository import (
    IScoreRepository,
    ScoreKey,
    ScoreRepository,
    TestSummary,
    UpsertResult,
    hash_credential,
)


__all__ = [
    # Base
    "SessionRepository",
    # Scores & students
    "IScoreRepository",
    "ScoreKey",
    "ScoreRepository",
    "TestSummary",
    "UpsertResult",
    "hash_credential",
]
