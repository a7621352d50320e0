"""
Score Import Service

Reconciles externally sourced rows with stored state.

Test results are idempotent inserts: a (student, test name, test date)
key that already exists is reported as skipped, never overwritten. The
roster is authoritative: re-importing a student overwrites the stored
entry. Row-level problems are collected and never block valid rows; a
StorageError aborts the whole operation.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from app.domain.analytics.interfaces import TestIdentity
from app.infrastructure.db.models.student import StudentCreate
from app.infrastructure.db.models.test_score import TestScoreCreate
from app.infrastructure.db.repositories.score_repository import (
    IScoreRepository,
    ScoreKey,
)
from app.infrastructure.exceptions import DuplicateRecordError, ValidationError
from app.infrastructure.services.score_row_mapper import (
    RawRow,
    ScoreRowMapper,
    ScoreTable,
)


logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Outcome of a test-result import."""
    inserted_count: int = 0
    skipped: List[Dict[str, str]] = field(default_factory=list)
    row_errors: List[str] = field(default_factory=list)

    def skip(self, key: ScoreKey) -> None:
        student_external_id, test_name, test_date = key
        self.skipped.append({
            "student_external_id": student_external_id,
            "test_name": test_name,
            "test_date": test_date.isoformat(),
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inserted_count": self.inserted_count,
            "skipped": list(self.skipped),
            "row_errors": list(self.row_errors),
        }


@dataclass
class RosterImportResult:
    """Outcome of a roster import."""
    inserted_or_updated_count: int = 0
    row_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inserted_or_updated_count": self.inserted_or_updated_count,
            "row_errors": list(self.row_errors),
        }


def _score_key(record: TestScoreCreate) -> ScoreKey:
    return (record.student_external_id, record.test_name, record.test_date)


class ScoreImportService:
    """
    Import reconciler over an IScoreRepository.

    Args:
        repository: Score repository (request-scoped)
        mapper: Row mapper; defaults to lenient section totals
    """

    def __init__(
        self,
        repository: IScoreRepository,
        mapper: Optional[ScoreRowMapper] = None,
    ):
        self._repo = repository
        self._mapper = mapper or ScoreRowMapper()

    # =========================================================================
    # Test results
    # =========================================================================

    async def import_test_csv(
        self,
        content: str,
        test_name: str,
        test_date: date,
    ) -> ImportResult:
        """Import a test-result CSV for one exam."""
        table = self._mapper.read_scores(content)
        return await self.import_score_table(table, test_name, test_date)

    async def import_score_table(
        self,
        table: ScoreTable,
        test_name: str,
        test_date: date,
    ) -> ImportResult:
        """Map every row of an already split file, then reconcile."""
        test_name = self._require_test_name(test_name)
        result = ImportResult()
        candidates: List[TestScoreCreate] = []

        for row in table.rows:
            try:
                candidates.append(
                    self._mapper.to_score(row, table.columns, test_name, test_date)
                )
            except ValidationError as e:
                result.row_errors.append(e.message)

        return await self._reconcile(candidates, result)

    async def import_scores(self, records: Iterable[TestScoreCreate]) -> ImportResult:
        """Reconcile rows that were validated elsewhere (e.g. JSON bodies)."""
        return await self._reconcile(list(records), ImportResult())

    async def _reconcile(
        self,
        candidates: List[TestScoreCreate],
        result: ImportResult,
    ) -> ImportResult:
        # First occurrence of a key wins within one batch
        seen = set()
        unique: List[TestScoreCreate] = []
        for record in candidates:
            key = _score_key(record)
            if key in seen:
                result.skip(key)
                continue
            seen.add(key)
            unique.append(record)

        if unique:
            upsert = await self._repo.upsert_scores(unique)
            await self._repo.commit()
            result.inserted_count = upsert.inserted_count
            for key in upsert.conflicts:
                result.skip(key)

        logger.info(
            f"[IMPORT] Test results: {result.inserted_count} inserted, "
            f"{len(result.skipped)} skipped, {len(result.row_errors)} row errors"
        )
        return result

    async def add_score(self, record: TestScoreCreate) -> TestScoreCreate:
        """
        Insert one manually entered score.

        Raises:
            DuplicateRecordError: the key already exists
        """
        self._require_test_name(record.test_name)
        upsert = await self._repo.upsert_scores([record])
        if upsert.conflicts:
            raise DuplicateRecordError(
                record.student_external_id,
                record.test_name,
                record.test_date.isoformat(),
            )
        await self._repo.commit()
        logger.info(
            f"[IMPORT] Added score for {record.student_external_id} "
            f"in {record.test_name} ({record.test_date})"
        )
        return record

    async def delete_test(self, test_name: str, test_date: date) -> int:
        """Delete every student's result for one exam."""
        identity = TestIdentity(self._require_test_name(test_name), test_date)
        deleted = await self._repo.delete_scores_by_test(identity)
        await self._repo.commit()
        logger.info(f"[IMPORT] Deleted {deleted} results of {test_name} ({test_date})")
        return deleted

    # =========================================================================
    # Roster
    # =========================================================================

    async def import_roster_csv(self, content: str) -> RosterImportResult:
        """Import a roster CSV (name, student_id, password)."""
        return await self.import_roster_rows(self._mapper.read_roster(content))

    async def import_roster_rows(self, rows: Iterable[RawRow]) -> RosterImportResult:
        result = RosterImportResult()
        # Last occurrence of an external id wins within one batch
        latest: Dict[str, StudentCreate] = {}

        for row in rows:
            try:
                student = self._mapper.to_student(row)
            except ValidationError as e:
                result.row_errors.append(e.message)
                continue
            latest.pop(student.external_id, None)
            latest[student.external_id] = student

        if latest:
            result.inserted_or_updated_count = await self._repo.upsert_students(
                list(latest.values())
            )
            await self._repo.commit()

        logger.info(
            f"[IMPORT] Roster: {result.inserted_or_updated_count} upserted, "
            f"{len(result.row_errors)} row errors"
        )
        return result

    @staticmethod
    def _require_test_name(test_name: str) -> str:
        name = (test_name or "").strip()
        if not name:
            raise ValidationError("test_name is required", field="test_name")
        return name
