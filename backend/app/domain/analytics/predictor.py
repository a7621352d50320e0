"""
Outcome Predictor

Rule-based estimate of graduation and national-exam pass probability.
Not a trained model: a deterministic scoring function over engineered
features, with every threshold kept as a named constant so the rule table
can be audited and tested on its own.
"""

from dataclasses import dataclass
from statistics import mean
from typing import Dict, List, Optional, Sequence

from app.domain.analytics.interfaces import (
    PredictionFactors,
    PredictionResult,
    ScoreObservation,
    passes,
)
from app.domain.analytics.trend import TrendAnalyzer


@dataclass
class HistorySummary:
    """Raw (un-normalized) statistics over the recent window."""
    window: List[ScoreObservation]
    latest: ScoreObservation
    history_length: int
    average_score: float
    average_section_ad: float
    average_section_bc: float
    average_rank: float
    progression: float
    volatility: float
    pass_rate: float
    above_average_rate: float


@dataclass(frozen=True)
class Adjustment:
    """One fired scoring rule."""
    delta: float
    factor: str


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


class FeatureExtractor:
    """
    Turns a score history (most recent first) into the feature vector.

    Progression and volatility are delegated to the TrendAnalyzer, which
    expects the oldest exam first.
    """

    WINDOW_SIZE = 3

    # Normalization scales
    TOTAL_SCALE = 200
    SECTION_AD_SCALE = 150
    SECTION_BC_SCALE = 50
    RANK_SCALE = 100
    PROGRESSION_SCALE = 50
    VOLATILITY_SCALE = 50
    VS_AVERAGE_SCALE = 100
    HISTORY_VOLUME_SCALE = 20

    def __init__(self, trend_analyzer: Optional[TrendAnalyzer] = None):
        self._trend = trend_analyzer or TrendAnalyzer()

    def summarize(self, history: Sequence[ScoreObservation]) -> HistorySummary:
        """Window statistics for a non-empty history."""
        window = list(history[:self.WINDOW_SIZE])
        chronological = list(reversed(window))
        size = len(window)

        return HistorySummary(
            window=window,
            latest=window[0],
            history_length=len(history),
            average_score=mean(s.total_score for s in window),
            average_section_ad=mean(s.section_ad for s in window),
            average_section_bc=mean(s.section_bc for s in window),
            average_rank=mean(s.rank for s in window),
            progression=self._trend.progression(chronological),
            volatility=self._trend.volatility(chronological),
            pass_rate=sum(1 for s in window if passes(s)) / size,
            above_average_rate=sum(
                1 for s in window if s.total_score >= s.avg_total_score
            ) / size,
        )

    def extract(self, summary: HistorySummary) -> Dict[str, float]:
        """Normalized feature vector, keyed by feature name."""
        latest = summary.latest
        return {
            "avg_total_score_norm": summary.average_score / self.TOTAL_SCALE,
            "avg_section_ad_norm": summary.average_section_ad / self.SECTION_AD_SCALE,
            "avg_section_bc_norm": summary.average_section_bc / self.SECTION_BC_SCALE,
            "avg_rank_norm": max(0.0, 1 - summary.average_rank / self.RANK_SCALE),
            "progression_norm": summary.progression / self.PROGRESSION_SCALE,
            "volatility_norm": min(1.0, summary.volatility / self.VOLATILITY_SCALE),
            "pass_rate": summary.pass_rate,
            "above_average_rate": summary.above_average_rate,
            "latest_total_score_norm": latest.total_score / self.TOTAL_SCALE,
            "latest_section_ad_norm": latest.section_ad / self.SECTION_AD_SCALE,
            "latest_section_bc_norm": latest.section_bc / self.SECTION_BC_SCALE,
            "latest_rank_norm": max(0.0, 1 - latest.rank / self.RANK_SCALE),
            "latest_vs_average": (
                (latest.total_score - latest.avg_total_score) / self.VS_AVERAGE_SCALE
            ),
            "data_volume_norm": min(1.0, summary.history_length / self.HISTORY_VOLUME_SCALE),
        }


class OutcomePredictor:
    """
    Graduation / national-exam outcome predictor.

    Probabilities start at 0.5 and move by fixed adjustments for each
    fired rule, then are clamped to [0, 1]. Confidence grows with the
    amount of history and is capped at 0.9.
    """

    BASE_PROBABILITY = 0.5

    # Average total score tiers
    SCORE_EXCELLENT = 180
    SCORE_STRONG = 150
    SCORE_SOLID = 120

    # Pass-rate tiers
    PASS_RATE_HIGH = 0.8
    PASS_RATE_GOOD = 0.6
    PASS_RATE_LOW = 0.3

    # Progression (points per exam)
    PROGRESSION_THRESHOLD = 5

    # Average rank tiers
    RANK_TOP = 10
    RANK_UPPER = 20
    RANK_LOW = 50

    # National exam: stricter than graduation, with a bonus for a strong latest exam
    NATIONAL_EXAM_PENALTY = 0.1
    NATIONAL_EXAM_BONUS = 0.1
    NATIONAL_AD_MARGIN = 140
    NATIONAL_BC_MARGIN = 47

    # Confidence
    CONFIDENCE_EMPTY = 0.1
    CONFIDENCE_BASE = 0.3
    CONFIDENCE_PER_EXAM = 0.1
    CONFIDENCE_MAX = 0.9

    # Recommendation triggers
    RECOMMEND_BC_BELOW = 44
    RECOMMEND_AD_BELOW = 132
    RECOMMEND_RANK_ABOVE = 30
    RECOMMEND_PASS_RATE_BELOW = 0.6

    def __init__(self, extractor: Optional[FeatureExtractor] = None):
        self._extractor = extractor or FeatureExtractor()

    def predict(self, history: Sequence[ScoreObservation]) -> PredictionResult:
        """
        Predict outcomes from a history ordered most recent first.

        Total function: an empty history yields the low-confidence default
        instead of an error.
        """
        if not history:
            return self._default_result()

        summary = self._extractor.summarize(history)
        features = self._extractor.extract(summary)

        adjustments = self._graduation_adjustments(summary)
        graduation = clamp01(
            self.BASE_PROBABILITY + sum(a.delta for a in adjustments)
        )

        national = max(0.0, graduation - self.NATIONAL_EXAM_PENALTY)
        bonus = self._national_exam_bonus(summary)
        if bonus:
            adjustments.append(bonus)
            national += bonus.delta
        national = clamp01(national)

        confidence = min(
            self.CONFIDENCE_MAX,
            self.CONFIDENCE_BASE + self.CONFIDENCE_PER_EXAM * summary.history_length,
        )

        factors = PredictionFactors(
            positive=[a.factor for a in adjustments if a.delta > 0],
            negative=[a.factor for a in adjustments if a.delta < 0],
        )

        return PredictionResult(
            graduation_probability=graduation,
            national_exam_probability=national,
            confidence=confidence,
            factors=factors,
            recommendations=self._recommendations(summary),
            features=features,
        )

    def _default_result(self) -> PredictionResult:
        return PredictionResult(
            graduation_probability=self.BASE_PROBABILITY,
            national_exam_probability=self.BASE_PROBABILITY,
            confidence=self.CONFIDENCE_EMPTY,
            factors=PredictionFactors(positive=[], negative=["insufficient data"]),
            recommendations=["record more exam results"],
        )

    def _graduation_adjustments(self, summary: HistorySummary) -> List[Adjustment]:
        """Fire the tiered rules; at most one tier per metric."""
        adjustments: List[Adjustment] = []

        score = summary.average_score
        if score >= self.SCORE_EXCELLENT:
            adjustments.append(Adjustment(0.3, "excellent overall scores"))
        elif score >= self.SCORE_STRONG:
            adjustments.append(Adjustment(0.2, "strong overall scores"))
        elif score >= self.SCORE_SOLID:
            adjustments.append(Adjustment(0.1, "solid overall scores"))
        else:
            adjustments.append(Adjustment(-0.2, "overall scores need improvement"))

        pass_rate = summary.pass_rate
        if pass_rate >= self.PASS_RATE_HIGH:
            adjustments.append(Adjustment(0.2, "consistently above the pass line"))
        elif pass_rate >= self.PASS_RATE_GOOD:
            adjustments.append(Adjustment(0.1, "usually above the pass line"))
        elif pass_rate < self.PASS_RATE_LOW:
            adjustments.append(Adjustment(-0.3, "rarely above the pass line"))

        if summary.progression > self.PROGRESSION_THRESHOLD:
            adjustments.append(Adjustment(0.15, "scores trending upward"))
        elif summary.progression < -self.PROGRESSION_THRESHOLD:
            adjustments.append(Adjustment(-0.15, "scores trending downward"))

        rank = summary.average_rank
        if rank <= self.RANK_TOP:
            adjustments.append(Adjustment(0.15, "consistently ranked in the top 10"))
        elif rank <= self.RANK_UPPER:
            adjustments.append(Adjustment(0.1, "consistently ranked in the top 20"))
        elif rank > self.RANK_LOW:
            adjustments.append(Adjustment(-0.1, "average rank below 50th"))

        return adjustments

    def _national_exam_bonus(self, summary: HistorySummary) -> Optional[Adjustment]:
        latest = summary.latest
        if (
            latest.section_ad >= self.NATIONAL_AD_MARGIN
            and latest.section_bc >= self.NATIONAL_BC_MARGIN
        ):
            return Adjustment(
                self.NATIONAL_EXAM_BONUS,
                "latest exam clears the national-exam safety margin",
            )
        return None

    def _recommendations(self, summary: HistorySummary) -> List[str]:
        latest = summary.latest
        recommendations: List[str] = []

        if latest.section_bc < self.RECOMMEND_BC_BELOW:
            recommendations.append("strengthen mandatory-section practice")
        if latest.section_ad < self.RECOMMEND_AD_BELOW:
            recommendations.append("increase general-section practice volume")
        if summary.progression < 0:
            recommendations.append("review study methods and identify weak areas")
        if summary.average_rank > self.RECOMMEND_RANK_ABOVE:
            recommendations.append("take regular mock exams to track progress")
        if summary.pass_rate < self.RECOMMEND_PASS_RATE_BELOW:
            recommendations.append("consolidate fundamentals")

        if not recommendations:
            recommendations.append("maintain the current study pace")

        return recommendations
