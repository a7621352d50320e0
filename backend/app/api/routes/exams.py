"""
Exam Routes

Exam list, per-exam statistics and rankings, and the cross-exam
leaderboard. Public read endpoints.
"""

from datetime import date

from fastapi import APIRouter, Query

from app.api.dependencies import AnalyticsServiceDep


router = APIRouter(prefix="/api", tags=["Exams & Rankings"])


@router.get("/tests")
async def list_tests(service: AnalyticsServiceDep):
    """Every exam with its participant count, most recent first."""
    tests = await service.list_tests()
    return {
        "tests": [
            {**summary.identity.to_dict(), "participant_count": summary.participant_count}
            for summary in tests
        ],
        "total": len(tests),
    }


@router.get("/tests/statistics")
async def get_test_statistics(
    service: AnalyticsServiceDep,
    test_name: str = Query(..., min_length=1),
    test_date: date = Query(...),
):
    """Section and total averages for one exam."""
    baseline = await service.test_statistics(test_name, test_date)
    return baseline.to_dict()


@router.get("/tests/rankings")
async def get_test_rankings(
    service: AnalyticsServiceDep,
    test_name: str = Query(..., min_length=1),
    test_date: date = Query(...),
):
    """Competition ranking of one exam (ties share a rank)."""
    ranking = await service.test_rankings(test_name, test_date)
    return {
        "test_name": test_name,
        "test_date": test_date.isoformat(),
        "rankings": [entry.to_dict() for entry in ranking],
    }


@router.get("/rankings/aggregate")
async def get_aggregate_rankings(service: AnalyticsServiceDep):
    """Leaderboard across every exam."""
    leaderboard = await service.aggregate_rankings()
    return {
        "rankings": [entry.to_dict() for entry in leaderboard],
        "total": len(leaderboard),
    }
