"""
Student Routes

Per-student report, trend and prediction built from stored results.
"""

from fastapi import APIRouter

from app.api.dependencies import AnalyticsServiceDep


router = APIRouter(prefix="/api/students", tags=["Students"])


@router.get("/{external_id}/scores")
async def get_student_scores(external_id: str, service: AnalyticsServiceDep):
    """Every exam of the student with baseline, rank and change since last exam."""
    report = await service.student_report(external_id)
    return report.to_dict()


@router.get("/{external_id}/trend")
async def get_student_trend(external_id: str, service: AnalyticsServiceDep):
    trend = await service.student_trend(external_id)
    return {"student_external_id": external_id, **trend.to_dict()}


@router.get("/{external_id}/prediction")
async def get_student_prediction(external_id: str, service: AnalyticsServiceDep):
    """Graduation / national-exam outlook from stored results."""
    report = await service.predict_for_student(external_id)
    return {"student_external_id": external_id, **report.to_dict()}
