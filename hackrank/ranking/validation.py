"""Ranking list validation and construction helpers."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence

from hackrank.errors import RankingValidationError
from hackrank.schemas.catalog import Team
from hackrank.schemas.evaluation import TeamRanking


def rank_sequence_problems(rankings: Sequence[TeamRanking]) -> list[str]:
    """Describe every way the ranks fail to be a permutation of 1..N.

    Returns an empty list for a valid sequence.
    """
    n = len(rankings)
    counts = Counter(r.rank for r in rankings)
    problems: list[str] = []
    for rank, count in sorted(counts.items()):
        if count > 1:
            problems.append(f"rank {rank} used {count} times")
        if rank > n:
            problems.append(f"rank {rank} exceeds {n} ranked teams")
    for rank in range(1, n + 1):
        if rank not in counts:
            problems.append(f"rank {rank} missing")
    return problems


def validate_rank_sequence(rankings: Sequence[TeamRanking]) -> None:
    """Raise unless the ranks are exactly 1..len(rankings).

    Raises:
        RankingValidationError: Listing the duplicate, missing and
            out-of-range ranks.
    """
    problems = rank_sequence_problems(rankings)
    if problems:
        raise RankingValidationError("invalid ranking sequence", details=problems)


def rankings_from_order(
    team_ids: Sequence[str],
    scores: Mapping[str, float] | None = None,
    comments: Mapping[str, str] | None = None,
) -> list[TeamRanking]:
    """Build a ranking list from an ordered list of team IDs.

    Rank is positional: the first team gets rank 1. Reordering means
    resubmitting the whole list.
    """
    scores = scores or {}
    comments = comments or {}
    return [
        TeamRanking(
            team_id=team_id,
            rank=position,
            score=scores.get(team_id),
            comments=comments.get(team_id),
        )
        for position, team_id in enumerate(team_ids, 1)
    ]


def unknown_team_ids(
    rankings: Sequence[TeamRanking], teams: Sequence[Team],
) -> list[str]:
    """Ranked team IDs that are not rankable or appear more than once."""
    valid = {t.team_id for t in teams}
    seen: set[str] = set()
    invalid: list[str] = []
    for r in rankings:
        if r.team_id not in valid or r.team_id in seen:
            invalid.append(r.team_id)
        seen.add(r.team_id)
    return invalid


def teams_missing_comments(
    rankings: Sequence[TeamRanking], teams: Sequence[Team],
) -> list[str]:
    """Names of teams that are unranked or ranked without comments."""
    commented = {r.team_id for r in rankings if r.comments}
    return [t.team_name for t in teams if t.team_id not in commented]
