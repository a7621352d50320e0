"""
Unit tests for the statistics aggregator.
"""

import math
from datetime import date

from app.domain.analytics import StatisticsAggregator, TestIdentity


class TestComputeBaseline:

    def test_averages_every_section(self, make_score, mock_exam):
        scores = [
            make_score("S1", 180, section_ad=140, section_bc=46, section_a=70, section_d=70),
            make_score("S2", 120, section_ad=100, section_bc=20, section_a=50, section_d=50),
        ]

        baseline = StatisticsAggregator().compute_baseline(mock_exam, scores)

        assert baseline.participant_count == 2
        assert baseline.avg_total_score == 150
        assert baseline.avg_section_ad == 120
        assert baseline.avg_section_bc == 33
        assert baseline.avg_section_a == 60
        assert baseline.avg_section_b == 0

    def test_empty_exam_is_all_zero(self, mock_exam):
        baseline = StatisticsAggregator().compute_baseline(mock_exam, [])

        values = baseline.to_dict()
        assert baseline.participant_count == 0
        for key, value in values.items():
            if key.startswith("avg_"):
                assert value == 0
                assert not math.isnan(value)

    def test_ignores_other_exams(self, make_score, mock_exam):
        other = TestIdentity("Mock 2", date(2026, 6, 1))
        scores = [make_score("S1", 100), make_score("S1", 200, identity=other)]

        baseline = StatisticsAggregator().compute_baseline(mock_exam, scores)

        assert baseline.participant_count == 1
        assert baseline.avg_total_score == 100

    def test_to_dict_rounds(self, make_score, mock_exam):
        scores = [make_score("S1", 100), make_score("S2", 100), make_score("S3", 101)]

        data = StatisticsAggregator().compute_baseline(mock_exam, scores).to_dict()

        assert data["avg_total_score"] == 100.33
        assert data["test_date"] == "2026-05-10"


class TestComputeAll:

    def test_one_baseline_per_exam(self, make_score, mock_exam):
        other = TestIdentity("Mock 2", date(2026, 6, 1))
        scores = [
            make_score("S1", 100),
            make_score("S2", 140),
            make_score("S1", 160, identity=other),
        ]

        baselines = StatisticsAggregator().compute_all(scores)

        assert set(baselines) == {mock_exam, other}
        assert baselines[mock_exam].avg_total_score == 120
        assert baselines[other].participant_count == 1
