# Ranking & predictive analytics engine for Score Portal
from app.domain.analytics.interfaces import (
    PASS_AD,
    PASS_BC,
    AggregateRankEntry,
    AggregateRankingPolicy,
    PredictionFactors,
    PredictionResult,
    RankedScore,
    ScoreObservation,
    ScoreRecord,
    StudentRecord,
    TestBaseline,
    TestIdentity,
    TrendDirection,
    TrendResult,
    passes,
)
from app.domain.analytics.statistics import StatisticsAggregator
from app.domain.analytics.ranking import RankingEngine, competition_ranks
from app.domain.analytics.trend import TrendAnalyzer
from app.domain.analytics.predictor import FeatureExtractor, OutcomePredictor

__all__ = [
    "PASS_AD",
    "PASS_BC",
    "AggregateRankEntry",
    "AggregateRankingPolicy",
    "PredictionFactors",
    "PredictionResult",
    "RankedScore",
    "ScoreObservation",
    "ScoreRecord",
    "StudentRecord",
    "TestBaseline",
    "TestIdentity",
    "TrendDirection",
    "TrendResult",
    "passes",
    "StatisticsAggregator",
    "RankingEngine",
    "competition_ranks",
    "TrendAnalyzer",
    "FeatureExtractor",
    "OutcomePredictor",
]
