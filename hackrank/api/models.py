"""Pydantic request schemas for the hackrank API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from hackrank.schemas.evaluation import MAX_COMMENT_LENGTH, TeamRanking


class RankingEntry(BaseModel):
    """One team's position as submitted by an evaluator."""

    team_id: str = Field(description="Ranked team")
    rank: int = Field(ge=1, description="1 = best")
    score: float | None = Field(default=None, ge=0, le=100, description="Optional score out of 100")
    comments: str | None = Field(default=None, max_length=MAX_COMMENT_LENGTH)

    def to_ranking(self) -> TeamRanking:
        return TeamRanking(
            team_id=self.team_id,
            rank=self.rank,
            score=self.score,
            comments=self.comments,
        )


class SaveRankingsRequest(BaseModel):
    """Full ranking list; ``is_finalized`` locks it."""

    rankings: list[RankingEntry] = Field(default_factory=list)
    is_finalized: bool = Field(default=False, description="Finalize instead of saving a draft")


class AssignmentRequest(BaseModel):
    """Problem statements to assign to an evaluator (replaces existing)."""

    problem_statement_ids: list[str] = Field(default_factory=list)


class StatusUpdateRequest(BaseModel):
    """New team status."""

    status: str = Field(description="registered, selected, waitlisted, rejected or finalist")


class WithdrawRequest(BaseModel):
    """Who removes the team and why."""

    deleted_by: str = Field(description="Email of the admin or leader removing the team")
    reason: str = Field(default="Team withdrawal")
