"""
Test configuration and fixtures for Score Portal.

Provides shared fixtures for unit and integration tests, including an
in-memory IScoreRepository so services and routes run without a database.
"""

import pytest
from datetime import date
from typing import Dict, List, Optional, Sequence

from fastapi.testclient import TestClient

from app.config.settings import Settings, get_settings
from app.domain.analytics import ScoreRecord, TestIdentity
from app.infrastructure.db.dependencies import get_score_repository
from app.infrastructure.db.models import (
    Student,
    StudentCreate,
    TestScore,
    TestScoreCreate,
)
from app.infrastructure.db.repositories import (
    IScoreRepository,
    TestSummary,
    UpsertResult,
    hash_credential,
)


ADMIN_KEY = "test-admin-key"


# =============================================================================
# In-memory repository
# =============================================================================

class InMemoryScoreRepository(IScoreRepository):
    """Dictionary-backed repository honoring the same uniqueness rules."""

    def __init__(self):
        self.scores: Dict[tuple, TestScore] = {}
        self.students: Dict[str, Student] = {}
        self.commits = 0

    async def list_scores_by_student(self, student_external_id: str) -> List[TestScore]:
        rows = [s for s in self.scores.values() if s.student_external_id == student_external_id]
        return sorted(rows, key=lambda s: (s.test_date, s.test_name))

    async def list_scores_by_test(self, identity: TestIdentity) -> List[TestScore]:
        return [
            s for s in self.scores.values()
            if s.test_name == identity.test_name and s.test_date == identity.test_date
        ]

    async def list_all_scores(self) -> List[TestScore]:
        return sorted(self.scores.values(), key=lambda s: (s.test_date, s.test_name))

    async def list_tests(self) -> List[TestSummary]:
        counts: Dict[TestIdentity, int] = {}
        for s in self.scores.values():
            identity = TestIdentity(s.test_name, s.test_date)
            counts[identity] = counts.get(identity, 0) + 1
        ordered = sorted(counts, key=lambda i: (-i.test_date.toordinal(), i.test_name))
        return [TestSummary(identity=i, participant_count=counts[i]) for i in ordered]

    async def upsert_scores(self, records: Sequence[TestScoreCreate]) -> UpsertResult:
        result = UpsertResult()
        for record in records:
            key = (record.student_external_id, record.test_name, record.test_date)
            if key in self.scores:
                result.conflicts.append(key)
                continue
            self.scores[key] = TestScore(**record.model_dump())
            result.inserted_count += 1
        return result

    async def delete_scores_by_test(self, identity: TestIdentity) -> int:
        keys = [k for k in self.scores if (k[1], k[2]) == (identity.test_name, identity.test_date)]
        for key in keys:
            del self.scores[key]
        return len(keys)

    async def upsert_students(self, students: Sequence[StudentCreate]) -> int:
        for s in students:
            existing = self.students.get(s.external_id)
            credential_hash = hash_credential(s.credential) if s.credential else None
            if existing is not None and credential_hash is None:
                credential_hash = existing.credential_hash
            self.students[s.external_id] = Student(
                external_id=s.external_id,
                display_name=s.display_name,
                credential_hash=credential_hash,
            )
        return len(students)

    async def get_student(self, external_id: str) -> Optional[Student]:
        return self.students.get(external_id)

    async def list_students(self) -> List[Student]:
        return [self.students[k] for k in sorted(self.students)]

    async def commit(self) -> None:
        self.commits += 1


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def mock_exam():
    """Default exam identity."""
    return TestIdentity("Mock 1", date(2026, 5, 10))


@pytest.fixture
def make_score(mock_exam):
    """Factory for ScoreRecord snapshots."""
    def _make(
        student: str,
        total: float,
        identity: TestIdentity = mock_exam,
        section_ad: float = 0.0,
        section_bc: float = 0.0,
        **sections,
    ) -> ScoreRecord:
        return ScoreRecord(
            student_external_id=student,
            test_name=identity.test_name,
            test_date=identity.test_date,
            section_ad=section_ad,
            section_bc=section_bc,
            total_score=total,
            **sections,
        )
    return _make


@pytest.fixture
def make_create(mock_exam):
    """Factory for TestScoreCreate rows."""
    def _make(
        student: str,
        total: float = 150.0,
        identity: TestIdentity = mock_exam,
        **fields,
    ) -> TestScoreCreate:
        return TestScoreCreate(
            student_external_id=student,
            test_name=identity.test_name,
            test_date=identity.test_date,
            total_score=total,
            **fields,
        )
    return _make


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def score_repo():
    """Fresh in-memory repository."""
    return InMemoryScoreRepository()


@pytest.fixture
def portal_settings():
    """Settings with the admin key configured, ignoring any local .env."""
    return Settings(_env_file=None, admin_api_key=ADMIN_KEY)


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def app(score_repo, portal_settings):
    """FastAPI application wired to the in-memory repository."""
    from app.main import app

    app.dependency_overrides[get_score_repository] = lambda: score_repo
    app.dependency_overrides[get_settings] = lambda: portal_settings
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app)
