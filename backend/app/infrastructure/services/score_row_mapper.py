"""
Score Row Mapper

Column mapping and per-row validation for imported CSV files. Parsing
itself is left to the ``csv`` module; this module only decides which cell
means what and whether a row is usable.

Two file shapes are accepted for test results:
1. A header row containing ``student_id``: columns located by name
2. No header: positional defaults (id at index 2, name at 3, scores 4-10)
"""

import csv
import io
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from app.infrastructure.db.models.student import StudentCreate
from app.infrastructure.db.models.test_score import TestScoreCreate
from app.infrastructure.exceptions import ValidationError


logger = logging.getLogger(__name__)


SCORE_COLUMNS = (
    "section_a",
    "section_b",
    "section_c",
    "section_d",
    "section_ad",
    "section_bc",
    "total_score",
)

# Column indexes used when the file has no student_id header
POSITIONAL_COLUMNS: Dict[str, int] = {
    "student_id": 2,
    "name": 3,
    **{name: index for index, name in enumerate(SCORE_COLUMNS, start=4)},
}

MIN_COLUMNS = 3
ROSTER_HEADER_MARKERS = ("ID", "PASS")
UTF8_BOM = "\ufeff"

# Leading decimal number; trailing text in the cell is ignored
_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class RawRow:
    """One non-blank CSV line with its 1-based line number."""
    row_number: int
    cells: Tuple[str, ...]


@dataclass
class ScoreTable:
    """Test-result file after header detection."""
    columns: Dict[str, int]
    rows: List[RawRow] = field(default_factory=list)
    has_header: bool = False


def parse_score_value(value: Optional[str]) -> float:
    """
    Lenient numeric parse for a score cell.

    Reads the leading number of the cell, so "12abc" is 12. Missing,
    unparseable, non-finite or negative values become 0.
    """
    if value is None:
        return 0.0
    match = _NUMBER_PREFIX.match(value.strip())
    if match is None:
        return 0.0
    number = float(match.group())
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _read_rows(content: str) -> List[RawRow]:
    # Excel CSV exports lead with a byte-order mark
    if content.startswith(UTF8_BOM):
        content = content[len(UTF8_BOM):]
    reader = csv.reader(io.StringIO(content))
    rows = []
    for line_number, cells in enumerate(reader, start=1):
        stripped = tuple(cell.strip() for cell in cells)
        if not any(stripped):
            continue
        rows.append(RawRow(row_number=line_number, cells=stripped))
    return rows


class ScoreRowMapper:
    """
    Maps raw CSV rows to validated create schemas.

    Args:
        strict_section_totals: Reject rows whose section_ad / section_bc
            disagree with a + d / b + c instead of trusting them
    """

    # Tolerance for strict total checks (scores may carry decimals)
    TOTAL_TOLERANCE = 1e-6

    def __init__(self, strict_section_totals: bool = False):
        self._strict = strict_section_totals

    # =========================================================================
    # Test results
    # =========================================================================

    def read_scores(self, content: str) -> ScoreTable:
        """Split a test-result CSV into column map and data rows."""
        rows = _read_rows(content)
        if not rows:
            return ScoreTable(columns=dict(POSITIONAL_COLUMNS))

        header = [cell.lower() for cell in rows[0].cells]
        if "student_id" not in header:
            return ScoreTable(columns=dict(POSITIONAL_COLUMNS), rows=rows)

        columns = {
            name: header.index(name)
            for name in ("student_id", "name", *SCORE_COLUMNS)
            if name in header
        }
        logger.debug(f"[IMPORT] Header columns: {columns}")
        return ScoreTable(columns=columns, rows=rows[1:], has_header=True)

    def to_score(
        self,
        row: RawRow,
        columns: Dict[str, int],
        test_name: str,
        test_date: date,
    ) -> TestScoreCreate:
        """
        Build one score row.

        Raises:
            ValidationError: too few columns, missing student id, or
                (strict mode) inconsistent section totals
        """
        cells = row.cells
        if len(cells) < MIN_COLUMNS:
            raise ValidationError(
                f"Row {row.row_number}: too few columns ({len(cells)})",
                row_number=row.row_number,
            )

        student_id = self._cell(cells, columns.get("student_id"))
        if not student_id:
            raise ValidationError(
                f"Row {row.row_number}: missing student id",
                row_number=row.row_number,
                field="student_id",
            )

        scores = {
            name: parse_score_value(self._cell(cells, columns.get(name)))
            for name in SCORE_COLUMNS
        }
        if self._strict:
            self._check_totals(row.row_number, scores)

        try:
            return TestScoreCreate(
                student_external_id=student_id,
                display_name=self._cell(cells, columns.get("name")) or None,
                test_name=test_name,
                test_date=test_date,
                **scores,
            )
        except PydanticValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(
                f"Row {row.row_number}: invalid {field_name or 'value'} ({first.get('msg')})",
                row_number=row.row_number,
                field=field_name or None,
            ) from e

    def _check_totals(self, row_number: int, scores: Dict[str, float]) -> None:
        expected_ad = scores["section_a"] + scores["section_d"]
        expected_bc = scores["section_b"] + scores["section_c"]

        if abs(scores["section_ad"] - expected_ad) > self.TOTAL_TOLERANCE:
            raise ValidationError(
                f"Row {row_number}: section_ad {scores['section_ad']:g} "
                f"does not equal section_a + section_d ({expected_ad:g})",
                row_number=row_number,
                field="section_ad",
            )
        if abs(scores["section_bc"] - expected_bc) > self.TOTAL_TOLERANCE:
            raise ValidationError(
                f"Row {row_number}: section_bc {scores['section_bc']:g} "
                f"does not equal section_b + section_c ({expected_bc:g})",
                row_number=row_number,
                field="section_bc",
            )

    # =========================================================================
    # Roster
    # =========================================================================

    def read_roster(self, content: str) -> List[RawRow]:
        """Roster rows; a first line mentioning ID or PASS is a header."""
        rows = _read_rows(content)
        if rows and any(
            marker in cell for cell in rows[0].cells for marker in ROSTER_HEADER_MARKERS
        ):
            return rows[1:]
        return rows

    def to_student(self, row: RawRow) -> StudentCreate:
        """
        Roster columns: name, student_id, password.

        Raises:
            ValidationError: too few columns or missing student id
        """
        if len(row.cells) < MIN_COLUMNS:
            raise ValidationError(
                f"Row {row.row_number}: too few columns ({len(row.cells)})",
                row_number=row.row_number,
            )

        name, student_id, credential = row.cells[:3]
        if not student_id:
            raise ValidationError(
                f"Row {row.row_number}: missing student id",
                row_number=row.row_number,
                field="student_id",
            )

        try:
            return StudentCreate(
                external_id=student_id,
                display_name=name,
                credential=credential or None,
            )
        except PydanticValidationError as e:
            raise ValidationError(
                f"Row {row.row_number}: {e.errors()[0].get('msg')}",
                row_number=row.row_number,
            ) from e

    @staticmethod
    def _cell(cells: Sequence[str], index: Optional[int]) -> str:
        if index is None or index >= len(cells):
            return ""
        return cells[index]
