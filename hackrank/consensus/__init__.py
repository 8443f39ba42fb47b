"""Multi-evaluator consensus for hackrank.

Provides the per-team consensus calculator, conflict classification,
problem-statement roll-ups, and the engine that feeds them from storage.
"""

from hackrank.consensus.aggregation import (
    count_conflicting,
    evaluator_progress,
    summarize_problem_statement,
)
from hackrank.consensus.calculator import (
    classify_conflict,
    compute_consensus,
    rank_standard_deviation,
    team_consensus,
)
from hackrank.consensus.engine import ConsensusEngine

__all__ = [
    "ConsensusEngine",
    "classify_conflict",
    "compute_consensus",
    "count_conflicting",
    "evaluator_progress",
    "rank_standard_deviation",
    "summarize_problem_statement",
    "team_consensus",
]
