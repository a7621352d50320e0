"""
Prediction Routes

Outcome prediction from a caller-supplied score history, for what-if
views that are not backed by stored results.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.api.dependencies import AnalyticsServiceDep
from app.domain.analytics import ScoreObservation


router = APIRouter(prefix="/api", tags=["Predictions"])


class ObservationRequest(BaseModel):
    """One exam of the history."""
    total_score: float = Field(..., ge=0.0)
    section_ad: float = Field(..., ge=0.0)
    section_bc: float = Field(..., ge=0.0)
    rank: int = Field(..., ge=1, description="Rank within that exam")
    avg_total_score: float = Field(0.0, ge=0.0, description="Exam average total")
    test_date: Optional[date] = None


class PredictionRequest(BaseModel):
    history: List[ObservationRequest] = Field(
        default_factory=list,
        description="Exam history, most recent first",
    )


@router.post("/predictions")
async def create_prediction(request: PredictionRequest, service: AnalyticsServiceDep):
    """Predict outcomes; an empty history returns the low-confidence default."""
    history = [ScoreObservation(**item.model_dump()) for item in request.history]
    return service.predict(history).to_dict()
