"""Evaluator ranking workflow: validation, draft saves, finalization."""

from hackrank.ranking.service import RankingService
from hackrank.ranking.validation import (
    rank_sequence_problems,
    rankings_from_order,
    teams_missing_comments,
    validate_rank_sequence,
)

__all__ = [
    "RankingService",
    "rank_sequence_problems",
    "rankings_from_order",
    "teams_missing_comments",
    "validate_rank_sequence",
]
