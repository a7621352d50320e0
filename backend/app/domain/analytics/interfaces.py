"""
Analytics Interfaces for Score Portal

Immutable snapshots and result types shared by the statistics, ranking,
trend and prediction engines. Engines never receive ORM objects; the
service layer converts repository rows into these dataclasses first.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID


# Published pass line: both must hold
PASS_AD = 132
PASS_BC = 44


class TrendDirection(str, Enum):
    """Direction of a student's most recent score change."""
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


class AggregateRankingPolicy(str, Enum):
    """How the cross-exam leaderboard orders students."""
    AVERAGE_RANK = "average_rank"
    AVERAGE_SCORE = "average_score"


@dataclass(frozen=True, order=True)
class TestIdentity:
    """One administered exam: (test name, test date)."""
    test_name: str
    test_date: date

    def to_dict(self) -> Dict[str, str]:
        return {
            "test_name": self.test_name,
            "test_date": self.test_date.isoformat(),
        }


@dataclass(frozen=True)
class ScoreRecord:
    """Read-only snapshot of one student's result in one exam."""
    student_external_id: str
    test_name: str
    test_date: date
    section_a: float = 0.0
    section_b: float = 0.0
    section_c: float = 0.0
    section_d: float = 0.0
    section_ad: float = 0.0
    section_bc: float = 0.0
    total_score: float = 0.0
    display_name: Optional[str] = None
    id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    @property
    def identity(self) -> TestIdentity:
        return TestIdentity(self.test_name, self.test_date)

    @property
    def key(self) -> tuple:
        """Uniqueness key: (student, test name, test date)."""
        return (self.student_external_id, self.test_name, self.test_date)


@dataclass(frozen=True)
class StudentRecord:
    """Read-only snapshot of a roster entry."""
    external_id: str
    display_name: str
    id: Optional[UUID] = None


def passes(score: Any) -> bool:
    """
    Pass/fail classification against the published thresholds.

    Works for anything exposing ``section_ad`` and ``section_bc``.
    """
    return (score.section_ad or 0) >= PASS_AD and (score.section_bc or 0) >= PASS_BC


SECTION_FIELDS = (
    "section_a",
    "section_b",
    "section_c",
    "section_d",
    "section_ad",
    "section_bc",
    "total_score",
)


@dataclass
class TestBaseline:
    """Mean of every section and of the total for one exam."""
    identity: TestIdentity
    participant_count: int = 0
    avg_section_a: float = 0.0
    avg_section_b: float = 0.0
    avg_section_c: float = 0.0
    avg_section_d: float = 0.0
    avg_section_ad: float = 0.0
    avg_section_bc: float = 0.0
    avg_total_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.identity.to_dict(),
            "participant_count": self.participant_count,
            "avg_section_a": round(self.avg_section_a, 2),
            "avg_section_b": round(self.avg_section_b, 2),
            "avg_section_c": round(self.avg_section_c, 2),
            "avg_section_d": round(self.avg_section_d, 2),
            "avg_section_ad": round(self.avg_section_ad, 2),
            "avg_section_bc": round(self.avg_section_bc, 2),
            "avg_total_score": round(self.avg_total_score, 2),
        }


@dataclass
class RankedScore:
    """One row of a per-exam ranking."""
    rank: int
    score: ScoreRecord
    display_name: Optional[str]
    passed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "student_external_id": self.score.student_external_id,
            "display_name": self.display_name,
            "section_a": self.score.section_a,
            "section_b": self.score.section_b,
            "section_c": self.score.section_c,
            "section_d": self.score.section_d,
            "section_ad": self.score.section_ad,
            "section_bc": self.score.section_bc,
            "total_score": self.score.total_score,
            "passed": self.passed,
        }


@dataclass
class AggregateRankEntry:
    """One row of the cross-exam leaderboard."""
    rank: int
    student_external_id: str
    display_name: Optional[str]
    average_rank: float
    average_score: float
    exams_taken: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "student_external_id": self.student_external_id,
            "display_name": self.display_name,
            "average_rank": round(self.average_rank, 2),
            "average_score": round(self.average_score, 2),
            "exams_taken": self.exams_taken,
        }


@dataclass
class TrendResult:
    """Recent trajectory of a student's total score."""
    direction: TrendDirection
    message: str
    window_size: int
    delta: Optional[float] = None
    progression: float = 0.0
    volatility: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trend": self.direction.value,
            "message": self.message,
            "window_size": self.window_size,
            "delta": self.delta,
            "progression": round(self.progression, 2),
            "volatility": round(self.volatility, 2),
        }


@dataclass(frozen=True)
class ScoreObservation:
    """
    One exam as seen by the outcome predictor.

    ``rank`` is the per-exam rank and ``avg_total_score`` that exam's
    baseline average.
    """
    total_score: float
    section_ad: float
    section_bc: float
    rank: int
    avg_total_score: float
    test_date: Optional[date] = None


@dataclass
class PredictionFactors:
    positive: List[str] = field(default_factory=list)
    negative: List[str] = field(default_factory=list)


@dataclass
class PredictionResult:
    """Bounded outcome estimates with the reasons behind them."""
    graduation_probability: float
    national_exam_probability: float
    confidence: float
    factors: PredictionFactors
    recommendations: List[str]
    features: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "graduation_probability": round(self.graduation_probability, 4),
            "national_exam_probability": round(self.national_exam_probability, 4),
            "confidence": round(self.confidence, 4),
            "factors": {
                "positive": list(self.factors.positive),
                "negative": list(self.factors.negative),
            },
            "recommendations": list(self.recommendations),
            "features": {k: round(v, 4) for k, v in self.features.items()},
        }
