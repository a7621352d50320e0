"""
Admin Routes for Score Management

Roster import, test-result import, manual score entry and exam deletion.
Protected by API key authentication.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from app.api.dependencies import ImportServiceDep, verify_admin_api_key
from app.infrastructure.db.models.test_score import TestScoreCreate


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(verify_admin_api_key)]  # Protect ALL admin routes
)


# =============================================================================
# Request/Response Schemas
# =============================================================================

class RosterImportRequest(BaseModel):
    """Roster CSV: name, student_id, password."""
    csv_content: str = Field(..., description="Raw CSV text")


class RosterImportResponse(BaseModel):
    inserted_or_updated_count: int
    row_errors: List[str]


class TestImportRequest(BaseModel):
    """Test-result CSV for one exam."""
    csv_content: str = Field(..., description="Raw CSV text")
    test_name: str = Field(..., min_length=1, max_length=255)
    test_date: date


class SkippedRow(BaseModel):
    student_external_id: str
    test_name: str
    test_date: str


class TestImportResponse(BaseModel):
    inserted_count: int
    skipped: List[SkippedRow]
    row_errors: List[str]


class ScoreCreateRequest(BaseModel):
    """One manually entered result."""
    student_external_id: str = Field(..., min_length=1, max_length=50)
    display_name: Optional[str] = Field(None, max_length=100)
    test_name: str = Field(..., min_length=1, max_length=255)
    test_date: date
    section_a: float = Field(0.0, ge=0.0)
    section_b: float = Field(0.0, ge=0.0)
    section_c: float = Field(0.0, ge=0.0)
    section_d: float = Field(0.0, ge=0.0)
    section_ad: float = Field(0.0, ge=0.0)
    section_bc: float = Field(0.0, ge=0.0)
    total_score: float = Field(0.0, ge=0.0)


class DeleteTestResponse(BaseModel):
    test_name: str
    test_date: date
    deleted_count: int


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/students/import", response_model=RosterImportResponse)
async def import_students(request: RosterImportRequest, service: ImportServiceDep):
    """Upsert the roster; existing students are overwritten."""
    result = await service.import_roster_csv(request.csv_content)
    return result.to_dict()


@router.post("/tests/import", response_model=TestImportResponse)
async def import_test_results(request: TestImportRequest, service: ImportServiceDep):
    """
    Import one exam's results.

    Rows whose (student, test name, test date) already exists are skipped,
    not overwritten. Invalid rows are reported and do not block the rest.
    """
    result = await service.import_test_csv(
        request.csv_content, request.test_name, request.test_date
    )
    return result.to_dict()


@router.post("/tests/scores", status_code=status.HTTP_201_CREATED)
async def add_score(request: ScoreCreateRequest, service: ImportServiceDep):
    """Add a single result; 409 when it already exists."""
    record = await service.add_score(TestScoreCreate(**request.model_dump()))
    return {
        **record.model_dump(),
        "test_date": record.test_date.isoformat(),
    }


@router.delete("/tests", response_model=DeleteTestResponse)
async def delete_test(
    service: ImportServiceDep,
    test_name: str = Query(..., min_length=1),
    test_date: date = Query(...),
):
    """Delete every student's result for one exam."""
    deleted = await service.delete_test(test_name, test_date)
    return DeleteTestResponse(
        test_name=test_name,
        test_date=test_date,
        deleted_count=deleted,
    )
