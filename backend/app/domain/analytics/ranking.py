"""
Ranking Engine

Per-exam standard competition ranking ("1, 1, 3") and the cross-exam
leaderboard. Ties share a rank value; ``student_external_id`` ascending
only fixes the output order.
"""

from statistics import mean
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from app.domain.analytics.interfaces import (
    AggregateRankEntry,
    AggregateRankingPolicy,
    RankedScore,
    ScoreRecord,
    TestIdentity,
    passes,
)


T = TypeVar("T")


def competition_ranks(
    items: Sequence[T],
    value: Callable[[T], float],
) -> List[int]:
    """
    Assign competition ranks to already-sorted items.

    Equal values share a rank; the next distinct value gets
    ``1 + number of items ranked strictly above it``.
    """
    ranks: List[int] = []
    previous: Optional[float] = None
    current_rank = 0

    for position, item in enumerate(items, start=1):
        item_value = value(item)
        if previous is None or item_value != previous:
            current_rank = position
            previous = item_value
        ranks.append(current_rank)

    return ranks


class RankingEngine:
    """
    Exam and leaderboard ranking.

    Display names come from the roster when available, falling back to
    the name stored on the score row.
    """

    def __init__(
        self,
        policy: AggregateRankingPolicy = AggregateRankingPolicy.AVERAGE_RANK,
    ):
        self._policy = policy

    @property
    def policy(self) -> AggregateRankingPolicy:
        return self._policy

    def rank_test(
        self,
        scores: Iterable[ScoreRecord],
        names: Optional[Mapping[str, str]] = None,
    ) -> List[RankedScore]:
        """
        Rank every row of a single exam by total score, highest first.

        Args:
            scores: Rows of one exam
            names: Optional external_id -> display name map (roster)

        Returns:
            RankedScore list in display order
        """
        names = names or {}
        ordered = sorted(
            scores,
            key=lambda s: (-s.total_score, s.student_external_id),
        )
        ranks = competition_ranks(ordered, lambda s: s.total_score)

        return [
            RankedScore(
                rank=rank,
                score=score,
                display_name=names.get(score.student_external_id) or score.display_name,
                passed=passes(score),
            )
            for rank, score in zip(ranks, ordered)
        ]

    def rank_all_tests(
        self,
        scores: Iterable[ScoreRecord],
    ) -> Dict[TestIdentity, Dict[str, int]]:
        """
        Per-exam rank of every student, for a whole snapshot.

        Returns:
            identity -> {student_external_id: rank}
        """
        grouped: Dict[TestIdentity, List[ScoreRecord]] = {}
        for score in scores:
            grouped.setdefault(score.identity, []).append(score)

        return {
            identity: {
                ranked.score.student_external_id: ranked.rank
                for ranked in self.rank_test(rows)
            }
            for identity, rows in grouped.items()
        }

    def aggregate_ranking(
        self,
        scores: Iterable[ScoreRecord],
        names: Optional[Mapping[str, str]] = None,
    ) -> List[AggregateRankEntry]:
        """
        Cross-exam leaderboard over every exam in the snapshot.

        With AVERAGE_RANK, students are ordered by the mean of their
        per-exam ranks (ascending). With AVERAGE_SCORE, by the mean total
        score (descending). Ties are broken by external id.
        """
        names = names or {}
        snapshot = list(scores)
        per_test_ranks = self.rank_all_tests(snapshot)

        ranks_by_student: Dict[str, List[int]] = {}
        totals_by_student: Dict[str, List[float]] = {}
        fallback_names: Dict[str, str] = {}

        for score in snapshot:
            student_id = score.student_external_id
            ranks_by_student.setdefault(student_id, []).append(
                per_test_ranks[score.identity][student_id]
            )
            totals_by_student.setdefault(student_id, []).append(score.total_score)
            if score.display_name and student_id not in fallback_names:
                fallback_names[student_id] = score.display_name

        rows = [
            (
                student_id,
                mean(ranks_by_student[student_id]),
                mean(totals_by_student[student_id]),
                len(ranks_by_student[student_id]),
            )
            for student_id in ranks_by_student
        ]

        if self._policy == AggregateRankingPolicy.AVERAGE_SCORE:
            rows.sort(key=lambda r: (-r[2], r[0]))
            ranks = competition_ranks(rows, lambda r: -r[2])
        else:
            rows.sort(key=lambda r: (r[1], r[0]))
            ranks = competition_ranks(rows, lambda r: r[1])

        return [
            AggregateRankEntry(
                rank=rank,
                student_external_id=student_id,
                display_name=names.get(student_id) or fallback_names.get(student_id),
                average_rank=avg_rank,
                average_score=avg_score,
                exams_taken=taken,
            )
            for rank, (student_id, avg_rank, avg_score, taken) in zip(ranks, rows)
        ]
