"""
SQLModel ORM Models for Score Portal

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from app.infrastructure.db.models.base import (
    CreatedAtMixin,
    TimestampMixin,
    UUIDMixin,
    utc_now,
)
from app.infrastructure.db.models.student import (
    Student,
    StudentBase,
    StudentCreate,
)
from app.infrastructure.db.models.test_score import (
    TEST_SCORE_CONFLICT_KEY,
    TestScore,
    TestScoreBase,
    TestScoreCreate,
)


__all__ = [
    # Base
    "CreatedAtMixin",
    "TimestampMixin",
    "UUIDMixin",
    "utc_now",
    # Student
    "Student",
    "StudentBase",
    "StudentCreate",
    # TestScore
    "TEST_SCORE_CONFLICT_KEY",
    "TestScore",
    "TestScoreBase",
    "TestScoreCreate",
]
