"""
Statistics Aggregator

Per-section and total averages for one exam. Recomputed on every call;
callers must not cache the result across inserts or deletes.
"""

from typing import Iterable

from app.domain.analytics.interfaces import (
    ScoreRecord,
    TestBaseline,
    TestIdentity,
    SECTION_FIELDS,
)


class StatisticsAggregator:
    """Computes exam baselines from a score snapshot."""

    def compute_baseline(
        self,
        identity: TestIdentity,
        scores: Iterable[ScoreRecord],
    ) -> TestBaseline:
        """
        Average every section over the rows belonging to ``identity``.

        Rows for other exams are ignored, so a caller may pass a larger
        snapshot. An exam with no rows yields an all-zero baseline.
        """
        matching = [s for s in scores if s.identity == identity]
        count = len(matching)

        if count == 0:
            return TestBaseline(identity=identity)

        averages = {
            f"avg_{name}": sum(getattr(s, name) or 0.0 for s in matching) / count
            for name in SECTION_FIELDS
        }
        return TestBaseline(identity=identity, participant_count=count, **averages)

    def compute_all(self, scores: Iterable[ScoreRecord]) -> dict:
        """Baselines for every exam present in the snapshot, keyed by identity."""
        grouped: dict = {}
        for score in scores:
            grouped.setdefault(score.identity, []).append(score)

        return {
            identity: self.compute_baseline(identity, rows)
            for identity, rows in grouped.items()
        }
