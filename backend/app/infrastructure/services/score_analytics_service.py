"""
Score Analytics Service

Read side of the portal. Every public method fetches one snapshot from the
repository, converts ORM rows into frozen ScoreRecord values and composes
the statistics, ranking, trend and prediction engines by parameter passing.
Nothing is cached between calls.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from app.domain.analytics import (
    AggregateRankEntry,
    AggregateRankingPolicy,
    OutcomePredictor,
    PredictionResult,
    RankedScore,
    RankingEngine,
    ScoreObservation,
    ScoreRecord,
    StatisticsAggregator,
    StudentRecord,
    TestBaseline,
    TestIdentity,
    TrendAnalyzer,
    TrendResult,
    passes,
)
from app.domain.analytics.interfaces import SECTION_FIELDS
from app.infrastructure.db.models.student import Student
from app.infrastructure.db.models.test_score import TestScore
from app.infrastructure.db.repositories.score_repository import (
    IScoreRepository,
    TestSummary,
)
from app.infrastructure.exceptions import NotFoundError


logger = logging.getLogger(__name__)


MODEL_VERSION = "1.0.0-rule-based"


def to_score_record(row: TestScore) -> ScoreRecord:
    """Snapshot an ORM row."""
    return ScoreRecord(
        student_external_id=row.student_external_id,
        test_name=row.test_name,
        test_date=row.test_date,
        section_a=row.section_a or 0.0,
        section_b=row.section_b or 0.0,
        section_c=row.section_c or 0.0,
        section_d=row.section_d or 0.0,
        section_ad=row.section_ad or 0.0,
        section_bc=row.section_bc or 0.0,
        total_score=row.total_score or 0.0,
        display_name=row.display_name,
        id=row.id,
        created_at=row.created_at,
    )


def to_student_record(row: Student) -> StudentRecord:
    return StudentRecord(
        external_id=row.external_id,
        display_name=row.display_name,
        id=row.id,
    )


@dataclass
class StudentExamEntry:
    """One exam in a student report."""
    score: ScoreRecord
    baseline: TestBaseline
    rank: int
    passed: bool
    # Section deltas versus the previous exam (None for the first one)
    changes: Dict[str, Optional[float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.score.identity.to_dict(),
            **{name: getattr(self.score, name) for name in SECTION_FIELDS},
            "rank": self.rank,
            "participant_count": self.baseline.participant_count,
            "passed": self.passed,
            "baseline": self.baseline.to_dict(),
            "changes": {
                name: (round(value, 2) if value is not None else None)
                for name, value in self.changes.items()
            },
        }


@dataclass
class StudentReport:
    student_external_id: str
    display_name: Optional[str]
    exams: List[StudentExamEntry]
    trend: TrendResult
    aggregate_rank: Optional[int] = None
    average_rank: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_external_id": self.student_external_id,
            "display_name": self.display_name,
            "aggregate_rank": self.aggregate_rank,
            "average_rank": (
                round(self.average_rank, 2) if self.average_rank is not None else None
            ),
            "trend": self.trend.to_dict(),
            "exams": [entry.to_dict() for entry in self.exams],
        }


@dataclass
class PredictionReport:
    """Prediction plus response metadata."""
    result: PredictionResult
    data_points: int
    generated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    model_version: str = MODEL_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.result.to_dict(),
            "metadata": {
                "data_points": self.data_points,
                "generated_at": self.generated_at.isoformat(),
                "model_version": self.model_version,
            },
        }


class ScoreAnalyticsService:
    """
    Rankings, baselines, trends and predictions over stored scores.

    Args:
        repository: Score repository (request-scoped)
        policy: Aggregate leaderboard policy
    """

    def __init__(
        self,
        repository: IScoreRepository,
        policy: AggregateRankingPolicy = AggregateRankingPolicy.AVERAGE_RANK,
        statistics: Optional[StatisticsAggregator] = None,
        trend_analyzer: Optional[TrendAnalyzer] = None,
        predictor: Optional[OutcomePredictor] = None,
    ):
        self._repo = repository
        self._statistics = statistics or StatisticsAggregator()
        self._ranking = RankingEngine(policy)
        self._trend = trend_analyzer or TrendAnalyzer()
        self._predictor = predictor or OutcomePredictor()

    # =========================================================================
    # Snapshots
    # =========================================================================

    async def _all_scores(self) -> List[ScoreRecord]:
        return [to_score_record(row) for row in await self._repo.list_all_scores()]

    async def _roster_names(self) -> Dict[str, str]:
        roster = [to_student_record(row) for row in await self._repo.list_students()]
        return {s.external_id: s.display_name for s in roster if s.display_name}

    async def _require_student(
        self, student_external_id: str, has_scores: bool
    ) -> Optional[StudentRecord]:
        """Roster entry, if any; NotFoundError when neither roster nor scores know the id."""
        row = await self._repo.get_student(student_external_id)
        if row is None:
            if not has_scores:
                raise NotFoundError(f"Student {student_external_id} not found")
            return None
        return to_student_record(row)

    # =========================================================================
    # Exams
    # =========================================================================

    async def list_tests(self) -> List[TestSummary]:
        return await self._repo.list_tests()

    async def test_statistics(self, test_name: str, test_date: date) -> TestBaseline:
        """Baseline for one exam; all zeros when it has no rows."""
        identity = TestIdentity(test_name, test_date)
        rows = await self._repo.list_scores_by_test(identity)
        return self._statistics.compute_baseline(
            identity, [to_score_record(row) for row in rows]
        )

    async def test_rankings(self, test_name: str, test_date: date) -> List[RankedScore]:
        identity = TestIdentity(test_name, test_date)
        rows = await self._repo.list_scores_by_test(identity)
        ranking = self._ranking.rank_test(
            [to_score_record(row) for row in rows],
            names=await self._roster_names(),
        )
        logger.info(
            f"[RANKING] Ranked {len(ranking)} results for {test_name} ({test_date})"
        )
        return ranking

    async def aggregate_rankings(self) -> List[AggregateRankEntry]:
        scores = await self._all_scores()
        leaderboard = self._ranking.aggregate_ranking(
            scores, names=await self._roster_names()
        )
        logger.info(
            f"[RANKING] Aggregate leaderboard ({self._ranking.policy.value}): "
            f"{len(leaderboard)} students over {len(scores)} results"
        )
        return leaderboard

    # =========================================================================
    # Students
    # =========================================================================

    async def student_trend(self, student_external_id: str) -> TrendResult:
        rows = await self._repo.list_scores_by_student(student_external_id)
        await self._require_student(student_external_id, has_scores=bool(rows))
        history = sorted(
            (to_score_record(row) for row in rows),
            key=lambda s: (s.test_date, s.test_name),
        )
        return self._trend.analyze(history)

    async def student_report(self, student_external_id: str) -> StudentReport:
        """
        Every exam of one student joined with its baseline and rank.

        Raises:
            NotFoundError: unknown student with no stored scores
        """
        scores = await self._all_scores()
        own = sorted(
            (s for s in scores if s.student_external_id == student_external_id),
            key=lambda s: (s.test_date, s.test_name),
        )
        student = await self._require_student(student_external_id, has_scores=bool(own))

        baselines = self._statistics.compute_all(scores)
        per_test_ranks = self._ranking.rank_all_tests(scores)

        entries: List[StudentExamEntry] = []
        previous: Optional[ScoreRecord] = None
        for score in own:
            changes = {
                name: (
                    getattr(score, name) - getattr(previous, name)
                    if previous is not None else None
                )
                for name in SECTION_FIELDS
            }
            entries.append(StudentExamEntry(
                score=score,
                baseline=baselines[score.identity],
                rank=per_test_ranks[score.identity][student_external_id],
                passed=passes(score),
                changes=changes,
            ))
            previous = score

        aggregate = next(
            (
                entry for entry in self._ranking.aggregate_ranking(scores)
                if entry.student_external_id == student_external_id
            ),
            None,
        )

        display_name = student.display_name if student and student.display_name else None
        if display_name is None and own:
            display_name = own[-1].display_name

        return StudentReport(
            student_external_id=student_external_id,
            display_name=display_name,
            exams=list(reversed(entries)),
            trend=self._trend.analyze(own),
            aggregate_rank=aggregate.rank if aggregate else None,
            average_rank=aggregate.average_rank if aggregate else None,
        )

    # =========================================================================
    # Prediction
    # =========================================================================

    def predict(self, history: Sequence[ScoreObservation]) -> PredictionReport:
        """Predict from a caller-supplied history (most recent first)."""
        result = self._predictor.predict(history)
        logger.info(
            f"[PREDICT] {len(history)} exams -> graduation "
            f"{result.graduation_probability:.2f}, national "
            f"{result.national_exam_probability:.2f}"
        )
        return PredictionReport(result=result, data_points=len(history))

    async def predict_for_student(self, student_external_id: str) -> PredictionReport:
        """
        Predict from stored results, ranking each exam against its cohort.

        A student without results gets the low-confidence default.
        """
        scores = await self._all_scores()
        own = [s for s in scores if s.student_external_id == student_external_id]
        await self._require_student(student_external_id, has_scores=bool(own))

        baselines = self._statistics.compute_all(scores)
        per_test_ranks = self._ranking.rank_all_tests(scores)

        history = [
            ScoreObservation(
                total_score=s.total_score,
                section_ad=s.section_ad,
                section_bc=s.section_bc,
                rank=per_test_ranks[s.identity][student_external_id],
                avg_total_score=baselines[s.identity].avg_total_score,
                test_date=s.test_date,
            )
            for s in sorted(own, key=lambda s: (s.test_date, s.test_name), reverse=True)
        ]
        return self.predict(history)
