"""Per-team consensus over multiple evaluators' rankings.

Pure functions, no I/O: given every evaluator's ranking list for one
problem statement, compute each team's average rank, average score,
rank standard deviation and conflict level.
"""

from __future__ import annotations

import logging
import statistics
from collections.abc import Mapping, Sequence

from hackrank.schemas.catalog import Team
from hackrank.schemas.consensus import (
    ConflictLevel,
    ConflictThresholds,
    ConsensusRow,
    EvaluatorContribution,
    TeamConsensus,
)
from hackrank.schemas.evaluation import TeamRanking

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS = ConflictThresholds()


def rank_standard_deviation(ranks: Sequence[float]) -> float | None:
    """Population standard deviation of the ranks.

    Returns None with fewer than two ranks: a single evaluator carries
    no information about disagreement.
    """
    if len(ranks) < 2:
        return None
    return statistics.pstdev(ranks)


def classify_conflict(
    std_dev: float | None,
    thresholds: ConflictThresholds = DEFAULT_THRESHOLDS,
) -> ConflictLevel:
    """Map a rank standard deviation to a conflict level.

    Both cutoffs are inclusive on the lower level; None counts as low.
    """
    if std_dev is None or std_dev <= thresholds.low_max:
        return ConflictLevel.LOW
    if std_dev <= thresholds.medium_max:
        return ConflictLevel.MEDIUM
    return ConflictLevel.HIGH


def team_consensus(
    contributions: Sequence[EvaluatorContribution],
    thresholds: ConflictThresholds = DEFAULT_THRESHOLDS,
) -> TeamConsensus:
    """Aggregate the contributions of every evaluator who ranked one team.

    Args:
        contributions: One entry per evaluator that included the team.
        thresholds: Conflict classification cutoffs.

    Returns:
        TeamConsensus; averages are None when nothing was contributed.
    """
    ranks = [c.rank for c in contributions]
    scores = [c.score for c in contributions if c.score is not None]

    std_dev = rank_standard_deviation(ranks)
    return TeamConsensus(
        average_rank=statistics.fmean(ranks) if ranks else None,
        average_score=statistics.fmean(scores) if scores else None,
        rank_standard_deviation=std_dev,
        conflict_level=classify_conflict(std_dev, thresholds),
        evaluator_count=len(ranks),
    )


def compute_consensus(
    teams: Sequence[Team],
    evaluator_rankings: Mapping[str, Sequence[TeamRanking]],
    evaluator_labels: Mapping[str, str] | None = None,
    thresholds: ConflictThresholds = DEFAULT_THRESHOLDS,
) -> list[ConsensusRow]:
    """Build the consensus table for one problem statement.

    A team an evaluator left out receives no contribution from that
    evaluator. Rankings that reference teams outside ``teams`` are ignored.

    Args:
        teams: Teams under the problem statement.
        evaluator_rankings: Evaluator ID → that evaluator's ranking list.
        evaluator_labels: Evaluator ID → display label (email). Falls back
            to the evaluator ID.
        thresholds: Conflict classification cutoffs.

    Returns:
        One ConsensusRow per team, sorted by average rank ascending with
        unranked teams last.
    """
    labels = evaluator_labels or {}
    contributions: dict[str, list[EvaluatorContribution]] = {
        team.team_id: [] for team in teams
    }

    for evaluator_id, rankings in evaluator_rankings.items():
        label = labels.get(evaluator_id, evaluator_id)
        for ranking in rankings:
            bucket = contributions.get(ranking.team_id)
            if bucket is None:
                logger.debug(
                    "Ignoring ranking of unknown team %s by %s",
                    ranking.team_id, evaluator_id,
                )
                continue
            bucket.append(EvaluatorContribution(
                evaluator_email=label,
                rank=ranking.rank,
                score=ranking.score,
                comments=ranking.comments,
            ))

    rows = [
        ConsensusRow(
            team_id=team.team_id,
            team_name=team.team_name,
            leader=team.leader,
            status=team.status.value,
            rankings=contributions[team.team_id],
            consensus=team_consensus(contributions[team.team_id], thresholds),
        )
        for team in teams
    ]
    return sort_by_average_rank(rows)


def sort_by_average_rank(rows: Sequence[ConsensusRow]) -> list[ConsensusRow]:
    """Best average rank first; teams nobody ranked go last (stable)."""
    return sorted(
        rows,
        key=lambda r: (
            r.consensus.average_rank is None,
            r.consensus.average_rank or 0.0,
        ),
    )
