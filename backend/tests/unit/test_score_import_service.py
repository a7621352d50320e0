"""
Unit tests for the import reconciler.

Runs against the in-memory repository from conftest.
"""

import pytest
from datetime import date
from unittest.mock import AsyncMock

from app.domain.analytics import TestIdentity
from app.infrastructure.db.repositories import IScoreRepository
from app.infrastructure.exceptions import (
    DuplicateRecordError,
    StorageError,
    ValidationError,
)
from app.infrastructure.services.score_import_service import ScoreImportService
from app.infrastructure.services.score_row_mapper import ScoreRowMapper


EXAM_DATE = date(2026, 5, 10)

RESULTS_CSV = (
    "student_id,name,section_a,section_b,section_c,section_d,section_ad,section_bc,total_score\n"
    "S001,Sato,70,22,23,72,142,45,187\n"
    "S002,Suzuki,60,20,20,60,120,40,160\n"
    "S003,Tanaka,55,21,21,55,110,42,152\n"
)


@pytest.fixture
def service(score_repo):
    return ScoreImportService(score_repo)


class TestImportTestResults:

    async def test_idempotent_import(self, service, score_repo):
        first = await service.import_test_csv(RESULTS_CSV, "Mock 1", EXAM_DATE)
        second = await service.import_test_csv(RESULTS_CSV, "Mock 1", EXAM_DATE)

        assert first.inserted_count == 3
        assert first.skipped == []
        assert second.inserted_count == 0
        assert [s["student_external_id"] for s in second.skipped] == ["S001", "S002", "S003"]
        assert second.skipped[0] == {
            "student_external_id": "S001",
            "test_name": "Mock 1",
            "test_date": "2026-05-10",
        }
        assert len(score_repo.scores) == 3

    async def test_byte_order_mark_header_is_not_imported(self, service, score_repo):
        result = await service.import_test_csv("\ufeff" + RESULTS_CSV, "Mock 1", EXAM_DATE)

        assert result.inserted_count == 3
        assert result.row_errors == []
        assert sorted(key[0] for key in score_repo.scores) == ["S001", "S002", "S003"]

    async def test_empty_batch(self, service, score_repo):
        result = await service.import_test_csv("", "Mock 1", EXAM_DATE)

        assert result.inserted_count == 0
        assert result.skipped == []
        assert result.row_errors == []
        assert score_repo.commits == 0

    async def test_row_errors_do_not_block_valid_rows(self, service, score_repo):
        content = (
            "1,A,S001,Sato,70,22,23,72,142,45,187\n"
            "2,A\n"
            "3,A,,Nameless,1,1,1,1,2,2,4\n"
            "4,A,S002,Suzuki,60,20,20,60,120,40,160\n"
        )

        result = await service.import_test_csv(content, "Mock 1", EXAM_DATE)

        assert result.inserted_count == 2
        assert result.row_errors == [
            "Row 2: too few columns (2)",
            "Row 3: missing student id",
        ]
        assert score_repo.commits == 1

    async def test_within_batch_duplicate_first_wins(self, service, score_repo):
        content = (
            "student_id,name,total_score\n"
            "S001,Sato,187\n"
            "S001,Sato,100\n"
        )

        result = await service.import_test_csv(content, "Mock 1", EXAM_DATE)

        assert result.inserted_count == 1
        assert len(result.skipped) == 1
        stored = score_repo.scores[("S001", "Mock 1", EXAM_DATE)]
        assert stored.total_score == 187

    async def test_same_student_other_exam_is_not_duplicate(self, service):
        await service.import_test_csv(RESULTS_CSV, "Mock 1", EXAM_DATE)
        result = await service.import_test_csv(RESULTS_CSV, "Mock 1", date(2026, 6, 1))

        assert result.inserted_count == 3

    async def test_blank_test_name_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.import_test_csv(RESULTS_CSV, "  ", EXAM_DATE)

    async def test_strict_mode_reports_mismatched_totals(self, score_repo):
        service = ScoreImportService(score_repo, ScoreRowMapper(strict_section_totals=True))
        content = RESULTS_CSV + "S004,Ito,10,10,10,10,99,20,40\n"

        result = await service.import_test_csv(content, "Mock 1", EXAM_DATE)

        assert result.inserted_count == 3
        assert len(result.row_errors) == 1
        assert result.row_errors[0].startswith("Row 5: section_ad")

    async def test_storage_error_propagates(self):
        repo = AsyncMock(spec=IScoreRepository)
        repo.upsert_scores.side_effect = StorageError("Database insert failed", operation="insert")
        service = ScoreImportService(repo)

        with pytest.raises(StorageError):
            await service.import_test_csv(RESULTS_CSV, "Mock 1", EXAM_DATE)

        repo.commit.assert_not_called()


class TestAddScore:

    async def test_add_then_duplicate(self, service, make_create):
        record = make_create("S001", 150)

        await service.add_score(record)

        with pytest.raises(DuplicateRecordError) as exc:
            await service.add_score(make_create("S001", 160))
        assert exc.value.details["student_external_id"] == "S001"


class TestDeleteTest:

    async def test_deletes_only_that_exam(self, service, score_repo):
        await service.import_test_csv(RESULTS_CSV, "Mock 1", EXAM_DATE)
        await service.import_test_csv(RESULTS_CSV, "Mock 2", EXAM_DATE)

        deleted = await service.delete_test("Mock 1", EXAM_DATE)

        assert deleted == 3
        assert await score_repo.list_scores_by_test(TestIdentity("Mock 1", EXAM_DATE)) == []
        assert len(score_repo.scores) == 3

    async def test_deleting_unknown_exam(self, service):
        assert await service.delete_test("Nope", EXAM_DATE) == 0


class TestImportRoster:

    async def test_roster_upsert_overwrites(self, service, score_repo):
        await service.import_roster_csv("NAME,ID,PASS\nSato,S001,pw1\n")
        result = await service.import_roster_csv("Sato Taro,S001,\n")

        assert result.inserted_or_updated_count == 1
        student = score_repo.students["S001"]
        assert student.display_name == "Sato Taro"
        # Blank credential keeps the stored hash
        assert student.credential_hash is not None
        assert "pw1" not in student.credential_hash

    async def test_last_occurrence_wins(self, service, score_repo):
        result = await service.import_roster_csv(
            "Old Name,S001,pw1\nSuzuki,S002,pw2\nNew Name,S001,pw3\n"
        )

        assert result.inserted_or_updated_count == 2
        assert score_repo.students["S001"].display_name == "New Name"

    async def test_roster_row_errors(self, service):
        result = await service.import_roster_csv("Sato,S001\nSuzuki,S002,pw\n")

        assert result.inserted_or_updated_count == 1
        assert result.row_errors == ["Row 1: too few columns (2)"]
