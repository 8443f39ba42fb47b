"""Evaluation schemas.

An Evaluation holds one evaluator's ordered ranking of the teams under
one problem statement. It starts as a draft and is finalized exactly once.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from hackrank.schemas.catalog import utc_now

MAX_COMMENT_LENGTH = 1000


class TeamRanking(BaseModel):
    """A single team's position in an evaluator's ranking (1 = best)."""

    team_id: str = Field(description="Ranked team")
    rank: int = Field(ge=1, description="Position in the ranking, 1 is best")
    score: float | None = Field(
        default=None, ge=0, le=100, description="Optional score out of 100",
    )
    comments: str | None = Field(
        default=None,
        max_length=MAX_COMMENT_LENGTH,
        description="Evaluator's comments; blank text is stored as missing",
    )
    evaluated_at: datetime = Field(default_factory=utc_now)

    @field_validator("comments", mode="before")
    @classmethod
    def _strip_comments(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class Evaluation(BaseModel):
    """One evaluator's rankings for one problem statement."""

    problem_statement_id: str
    evaluator_id: str
    rankings: list[TeamRanking] = Field(default_factory=list)
    is_finalized: bool = False
    submitted_at: datetime | None = Field(
        default=None, description="Set once, when the evaluation is finalized",
    )
    total_teams: int = Field(
        default=0, ge=0, description="Teams under the problem statement at save time",
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def ranking_for(self, team_id: str) -> TeamRanking | None:
        for ranking in self.rankings:
            if ranking.team_id == team_id:
                return ranking
        return None

    def sorted_rankings(self) -> list[TeamRanking]:
        return sorted(self.rankings, key=lambda r: r.rank)

    @model_validator(mode="after")
    def _check_consistency(self) -> Evaluation:
        """Ranks form 1..N over distinct teams; submitted_at marks finalization."""
        ranks = sorted(r.rank for r in self.rankings)
        if ranks != list(range(1, len(ranks) + 1)):
            raise ValueError(f"ranks must be exactly 1..{len(ranks)}, got {ranks}")
        team_ids = [r.team_id for r in self.rankings]
        if len(set(team_ids)) != len(team_ids):
            raise ValueError("each team may be ranked only once")
        if self.is_finalized and self.submitted_at is None:
            raise ValueError("a finalized evaluation needs submitted_at")
        if not self.is_finalized and self.submitted_at is not None:
            raise ValueError("a draft evaluation cannot have submitted_at")
        return self


class RankedTeamView(BaseModel):
    """A team as shown to an evaluator on the ranking screen."""

    team_id: str
    team_name: str
    leader_name: str
    leader_email: str
    status: str
    current_rank: int | None = None
    score: float | None = None
    comments: str | None = None


class RankingView(BaseModel):
    """Everything an evaluator needs to rank one problem statement."""

    problem_statement_id: str
    problem_statement_title: str
    teams: list[RankedTeamView] = Field(default_factory=list)
    is_evaluated: bool = False
    is_finalized: bool = False
    submitted_at: datetime | None = None
