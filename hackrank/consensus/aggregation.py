"""Problem-statement and evaluator roll-ups.

Pure reductions over the consensus table and evaluation metadata; the
ConsensusEngine gathers the inputs from the stores.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from hackrank.schemas.catalog import Evaluator, ProblemStatement
from hackrank.schemas.consensus import (
    ConflictLevel,
    ConsensusRow,
    EvaluatorProgress,
    ProblemStatementProgress,
    ProblemStatementStatistics,
)
from hackrank.schemas.evaluation import Evaluation


def count_conflicting(rows: Sequence[ConsensusRow]) -> int:
    """Teams whose conflict level is anything but low."""
    return sum(1 for r in rows if r.consensus.conflict_level != ConflictLevel.LOW)


def summarize_problem_statement(
    rows: Sequence[ConsensusRow],
    evaluator_ids: Sequence[str],
    evaluations: Sequence[Evaluation],
) -> ProblemStatementStatistics:
    """Roll up evaluation progress and disagreement for a problem statement.

    Args:
        rows: The consensus table (one row per team).
        evaluator_ids: Evaluators assigned to the problem statement.
        evaluations: Evaluations saved for the problem statement. Only
            finalized ones by assigned evaluators count as completed.
    """
    assigned = set(evaluator_ids)
    completed = sum(
        1 for e in evaluations if e.is_finalized and e.evaluator_id in assigned
    )
    return ProblemStatementStatistics(
        total_teams=len(rows),
        total_evaluators=len(assigned),
        completed_evaluations=completed,
        pending_evaluations=len(assigned) - completed,
        conflicting_teams=count_conflicting(rows),
    )


def progress_percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding, so 12.5% displays as 13%
    return math.floor(completed / total * 100 + 0.5)


def problem_statement_progress(
    ps: ProblemStatement,
    total_teams: int,
    evaluation: Evaluation | None,
) -> ProblemStatementProgress:
    """One evaluator's status on one assigned problem statement."""
    return ProblemStatementProgress(
        problem_statement_id=ps.problem_statement_id,
        title=ps.title,
        total_teams=total_teams,
        is_evaluated=evaluation is not None,
        is_finalized=bool(evaluation and evaluation.is_finalized),
        submitted_at=evaluation.submitted_at if evaluation else None,
        ranked_teams=len(evaluation.rankings) if evaluation else 0,
    )


def evaluator_progress(
    evaluator: Evaluator,
    statements: Sequence[ProblemStatementProgress],
) -> EvaluatorProgress:
    """Summarize an evaluator's progress across their assignments."""
    completed = sum(1 for s in statements if s.is_finalized)
    drafts = sum(1 for s in statements if s.is_evaluated and not s.is_finalized)
    return EvaluatorProgress(
        evaluator_id=evaluator.evaluator_id,
        email=evaluator.email,
        is_active=evaluator.is_active,
        total_assignments=len(statements),
        completed_evaluations=completed,
        draft_evaluations=drafts,
        progress_percentage=progress_percentage(completed, len(statements)),
        total_teams_evaluated=sum(s.ranked_teams for s in statements),
        problem_statements=list(statements),
    )
