"""
Score Repository

Read/write access to students and test scores. The unique constraint on
(student_external_id, test_name, test_date) is the authoritative guard
against duplicates: ``upsert_scores`` inserts with ON CONFLICT DO NOTHING
and reports which keys collided, so concurrent imports cannot create two
rows for the same key.
"""

import hashlib
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Set, Tuple
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.analytics.interfaces import TestIdentity
from app.infrastructure.db.models.base import utc_now
from app.infrastructure.db.models.student import Student, StudentCreate
from app.infrastructure.db.models.test_score import (
    TEST_SCORE_CONFLICT_KEY,
    TestScore,
    TestScoreCreate,
)
from app.infrastructure.db.repositories.base_repository import (
    SessionRepository,
    chunked,
)


logger = logging.getLogger(__name__)


ScoreKey = Tuple[str, str, date]


@dataclass
class UpsertResult:
    """Outcome of a conflict-aware bulk insert."""
    inserted_count: int = 0
    conflicts: List[ScoreKey] = field(default_factory=list)


@dataclass(frozen=True)
class TestSummary:
    """One exam in the test-management list."""
    identity: TestIdentity
    participant_count: int


def hash_credential(credential: str) -> str:
    """PBKDF2-SHA256 hash in ``salt$hex`` form."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", credential.encode("utf-8"), salt.encode("utf-8"), 100_000
    )
    return f"{salt}${digest.hex()}"


class IScoreRepository(ABC):
    """
    Repository contract consumed by the import and analytics services.

    All methods raise StorageError on I/O failure. Returned rows are
    snapshots; callers must not mutate them.
    """

    @abstractmethod
    async def list_scores_by_student(self, student_external_id: str) -> List[TestScore]:
        """All scores of one student, oldest exam first."""

    @abstractmethod
    async def list_scores_by_test(self, identity: TestIdentity) -> List[TestScore]:
        """All scores of one exam."""

    @abstractmethod
    async def list_all_scores(self) -> List[TestScore]:
        """Every score row (leaderboard batch fetch)."""

    @abstractmethod
    async def list_tests(self) -> List[TestSummary]:
        """Distinct exams with participant counts, most recent first."""

    @abstractmethod
    async def upsert_scores(self, records: Sequence[TestScoreCreate]) -> UpsertResult:
        """Insert rows; existing keys are left untouched and reported as conflicts."""

    @abstractmethod
    async def delete_scores_by_test(self, identity: TestIdentity) -> int:
        """Delete every student's row for one exam; returns deleted count."""

    @abstractmethod
    async def upsert_students(self, students: Sequence[StudentCreate]) -> int:
        """Insert or overwrite roster entries by external id."""

    @abstractmethod
    async def get_student(self, external_id: str) -> Optional[Student]:
        """One roster entry, or None."""

    @abstractmethod
    async def list_students(self) -> List[Student]:
        """The full roster."""

    @abstractmethod
    async def commit(self) -> None:
        """Make pending writes durable."""


class ScoreRepository(SessionRepository, IScoreRepository):
    """SQLModel / async SQLAlchemy implementation of IScoreRepository."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    # =========================================================================
    # Scores (read)
    # =========================================================================

    async def list_scores_by_student(self, student_external_id: str) -> List[TestScore]:
        stmt = (
            select(TestScore)
            .where(TestScore.student_external_id == student_external_id)
            .order_by(TestScore.test_date.asc(), TestScore.test_name.asc())
        )
        result = await self._execute(stmt, "select", "test_scores")
        return list(result.scalars().all())

    async def list_scores_by_test(self, identity: TestIdentity) -> List[TestScore]:
        stmt = (
            select(TestScore)
            .where(
                TestScore.test_name == identity.test_name,
                TestScore.test_date == identity.test_date,
            )
            .order_by(TestScore.total_score.desc(), TestScore.student_external_id.asc())
        )
        result = await self._execute(stmt, "select", "test_scores")
        return list(result.scalars().all())

    async def list_all_scores(self) -> List[TestScore]:
        stmt = select(TestScore).order_by(
            TestScore.test_date.asc(), TestScore.test_name.asc()
        )
        result = await self._execute(stmt, "select", "test_scores")
        return list(result.scalars().all())

    async def list_tests(self) -> List[TestSummary]:
        stmt = (
            select(
                TestScore.test_name,
                TestScore.test_date,
                func.count(TestScore.id).label("participant_count"),
            )
            .group_by(TestScore.test_name, TestScore.test_date)
            .order_by(TestScore.test_date.desc(), TestScore.test_name.asc())
        )
        result = await self._execute(stmt, "select", "test_scores")
        return [
            TestSummary(
                identity=TestIdentity(row.test_name, row.test_date),
                participant_count=row.participant_count,
            )
            for row in result.all()
        ]

    # =========================================================================
    # Scores (write)
    # =========================================================================

    async def upsert_scores(self, records: Sequence[TestScoreCreate]) -> UpsertResult:
        """
        Bulk insert with ON CONFLICT DO NOTHING ... RETURNING key.

        Keys not returned by the database already existed. Large batches
        are sent as several statements within the same transaction.
        """
        if not records:
            return UpsertResult()

        now = utc_now()
        inserted: Set[ScoreKey] = set()
        for chunk in chunked(records):
            values = [
                {**record.model_dump(), "id": uuid4(), "created_at": now}
                for record in chunk
            ]
            stmt = self.insert(TestScore).values(values)
            stmt = stmt.on_conflict_do_nothing(
                index_elements=list(TEST_SCORE_CONFLICT_KEY)
            ).returning(
                TestScore.student_external_id,
                TestScore.test_name,
                TestScore.test_date,
            )
            result = await self._execute(stmt, "insert", "test_scores")
            inserted.update(tuple(row) for row in result.all())

        conflicts = [
            (r.student_external_id, r.test_name, r.test_date)
            for r in records
            if (r.student_external_id, r.test_name, r.test_date) not in inserted
        ]

        logger.info(
            f"[STORAGE] Inserted {len(inserted)} score rows, {len(conflicts)} conflicts"
        )
        return UpsertResult(inserted_count=len(inserted), conflicts=conflicts)

    async def delete_scores_by_test(self, identity: TestIdentity) -> int:
        stmt = (
            delete(TestScore)
            .where(
                TestScore.test_name == identity.test_name,
                TestScore.test_date == identity.test_date,
            )
            .returning(TestScore.id)
        )
        result = await self._execute(stmt, "delete", "test_scores")
        deleted = len(result.all())
        logger.info(
            f"[STORAGE] Deleted {deleted} score rows for {identity.test_name} ({identity.test_date})"
        )
        return deleted

    # =========================================================================
    # Students
    # =========================================================================

    async def upsert_students(self, students: Sequence[StudentCreate]) -> int:
        """
        Roster upsert by external id; later data overwrites earlier data.

        A missing credential keeps the stored hash.
        """
        if not students:
            return 0

        now = utc_now()
        for chunk in chunked(students):
            values = [
                {
                    "id": uuid4(),
                    "external_id": s.external_id,
                    "display_name": s.display_name,
                    "credential_hash": hash_credential(s.credential) if s.credential else None,
                    "created_at": now,
                    "updated_at": now,
                }
                for s in chunk
            ]
            stmt = self.insert(Student).values(values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["external_id"],
                set_={
                    "display_name": stmt.excluded.display_name,
                    "credential_hash": func.coalesce(
                        stmt.excluded.credential_hash, Student.credential_hash
                    ),
                    "updated_at": now,
                },
            )
            await self._execute(stmt, "upsert", "students")
        return len(students)

    async def get_student(self, external_id: str) -> Optional[Student]:
        stmt = select(Student).where(Student.external_id == external_id)
        result = await self._execute(stmt, "select", "students")
        return result.scalar_one_or_none()

    async def list_students(self) -> List[Student]:
        stmt = select(Student).order_by(Student.external_id.asc())
        result = await self._execute(stmt, "select", "students")
        return list(result.scalars().all())
