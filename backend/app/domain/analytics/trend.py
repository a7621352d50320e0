"""
Trend Analyzer

Classifies the most recent change in a student's total score and derives
the progression slope and volatility used by the outcome predictor.
"""

from statistics import pstdev
from typing import Any, Sequence

from app.domain.analytics.interfaces import TrendDirection, TrendResult


class TrendAnalyzer:
    """
    Trend over the last few exams.

    Input history must be ordered by test date ascending (oldest first).
    Items only need a ``total_score`` attribute.
    """

    WINDOW_SIZE = 3
    # A change within +/- this many points counts as stable
    DELTA_THRESHOLD = 5

    def recent_window(self, history: Sequence[Any]) -> list:
        """The last ``min(WINDOW_SIZE, len(history))`` exams, oldest first."""
        if not history:
            return []
        return list(history[-self.WINDOW_SIZE:])

    def progression(self, window: Sequence[Any]) -> float:
        """
        Average per-exam change across the window.

        Positive when the latest total is above the oldest one.
        """
        if len(window) < 2:
            return 0.0
        first = window[0].total_score or 0.0
        last = window[-1].total_score or 0.0
        return (last - first) / (len(window) - 1)

    def volatility(self, window: Sequence[Any]) -> float:
        """Population standard deviation of the window's totals."""
        if not window:
            return 0.0
        return float(pstdev([s.total_score or 0.0 for s in window]))

    def analyze(self, history: Sequence[Any]) -> TrendResult:
        """Classify the trend of an ascending score history."""
        window = self.recent_window(history)

        if len(window) < 2:
            return TrendResult(
                direction=TrendDirection.NEUTRAL,
                message="Not enough data to analyze a trend yet.",
                window_size=len(window),
                volatility=self.volatility(window),
            )

        latest = window[-1].total_score or 0.0
        previous = window[-2].total_score or 0.0
        delta = latest - previous

        if delta > self.DELTA_THRESHOLD:
            direction = TrendDirection.UP
            message = f"Up {delta:.1f} points from the previous exam. Keep it up!"
        elif delta < -self.DELTA_THRESHOLD:
            direction = TrendDirection.DOWN
            message = f"Down {abs(delta):.1f} points from the previous exam. Step up your review."
        else:
            direction = TrendDirection.NEUTRAL
            message = "Scores are stable. Keep studying at the same pace."

        return TrendResult(
            direction=direction,
            message=message,
            window_size=len(window),
            delta=delta,
            progression=self.progression(window),
            volatility=self.volatility(window),
        )
