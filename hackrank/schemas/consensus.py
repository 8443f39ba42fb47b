"""Consensus schemas for multi-evaluator ranking analysis.

Defines the conflict classification (ConflictLevel, ConflictThresholds),
the per-team consensus table (TeamConsensus, ConsensusRow), the
problem-statement roll-up (ProblemStatementStatistics, ConsensusReport,
ProblemStatementOverview), and evaluator progress views.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from hackrank.schemas.catalog import Leader
from hackrank.schemas.evaluation import TeamRanking


class ConflictLevel(StrEnum):
    """How strongly evaluators disagree on a team's rank."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConflictThresholds(BaseModel):
    """Standard-deviation cutoffs for conflict classification.

    ``low`` covers stddev <= low_max, ``medium`` covers
    low_max < stddev <= medium_max, anything above is ``high``.
    """

    low_max: float = Field(default=1.0, ge=0.0)
    medium_max: float = Field(default=2.5, ge=0.0)

    @model_validator(mode="after")
    def _ordered(self) -> ConflictThresholds:
        if self.low_max > self.medium_max:
            raise ValueError(
                f"low_max ({self.low_max}) must not exceed medium_max ({self.medium_max})"
            )
        return self


class EvaluatorContribution(BaseModel):
    """One evaluator's ranking entry for a team."""

    evaluator_email: str
    rank: int
    score: float | None = None
    comments: str | None = None


class TeamConsensus(BaseModel):
    """Aggregate statistics over every evaluator who ranked a team."""

    average_rank: float | None = None
    average_score: float | None = None
    rank_standard_deviation: float | None = Field(
        default=None, description="Population stddev; None with fewer than 2 ranks",
    )
    conflict_level: ConflictLevel = ConflictLevel.LOW
    evaluator_count: int = 0


class ConsensusRow(BaseModel):
    """A team with its contributing rankings and consensus statistics."""

    team_id: str
    team_name: str
    leader: Leader | None = None
    status: str = ""
    rankings: list[EvaluatorContribution] = Field(default_factory=list)
    consensus: TeamConsensus = Field(default_factory=TeamConsensus)


class EvaluatorRanking(BaseModel):
    """An assigned evaluator and their (possibly missing) evaluation."""

    evaluator_id: str
    evaluator_email: str
    is_finalized: bool = False
    submitted_at: datetime | None = None
    rankings: list[TeamRanking] | None = Field(
        default=None, description="Sorted by rank; None when nothing was saved",
    )


class ProblemStatementStatistics(BaseModel):
    """Roll-up of evaluation progress and disagreement for a problem statement."""

    total_teams: int = 0
    total_evaluators: int = 0
    completed_evaluations: int = 0
    pending_evaluations: int = 0
    conflicting_teams: int = 0


class ConsensusReport(BaseModel):
    """Full consensus analysis for one problem statement."""

    problem_statement_id: str
    title: str
    description: str = ""
    statistics: ProblemStatementStatistics
    evaluator_rankings: list[EvaluatorRanking] = Field(default_factory=list)
    consensus_analysis: list[ConsensusRow] = Field(default_factory=list)


class ProblemStatementOverview(BaseModel):
    """One line of the all-problem-statements ranking overview."""

    problem_statement_id: str
    ps_number: str
    title: str
    description: str = ""
    assigned_evaluators: int = 0
    completed_evaluations: int = 0
    total_teams: int = 0
    conflicting_teams: int = 0


class ProblemStatementProgress(BaseModel):
    """An evaluator's progress on one assigned problem statement."""

    problem_statement_id: str
    title: str
    total_teams: int = 0
    is_evaluated: bool = False
    is_finalized: bool = False
    submitted_at: datetime | None = None
    ranked_teams: int = 0


class EvaluatorProgress(BaseModel):
    """An evaluator's progress across all assignments."""

    evaluator_id: str
    email: str
    is_active: bool = True
    total_assignments: int = 0
    completed_evaluations: int = 0
    draft_evaluations: int = 0
    progress_percentage: int = 0
    total_teams_evaluated: int = 0
    problem_statements: list[ProblemStatementProgress] = Field(default_factory=list)
