"""Catalog schemas: problem statements, teams, and evaluator accounts.

These records are owned by the registration and admin workflows. The
ranking and consensus subsystems only read them, except for the team
status field which the selection action writes.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


class TeamStatus(StrEnum):
    """Lifecycle status of a registered team."""

    REGISTERED = "registered"
    SELECTED = "selected"
    WAITLISTED = "waitlisted"
    REJECTED = "rejected"
    FINALIST = "finalist"


class AdminRole(StrEnum):
    """Role of an admin account."""

    EVALUATOR = "evaluator"
    SUPER_ADMIN = "super-admin"


class Leader(BaseModel):
    """Team leader contact details."""

    name: str = Field(description="Leader's full name")
    email: str = Field(description="Leader's email address")


class TeamMember(BaseModel):
    """A non-leader team member."""

    name: str
    email: str
    phone: str = ""
    gender: str = ""
    college: str = ""
    year: str = ""
    branch: str = ""


class Team(BaseModel):
    """A team registered against a single problem statement."""

    team_id: str = Field(description="Unique team identifier")
    team_name: str = Field(description="Display name, unique across the event")
    leader: Leader = Field(description="Team leader")
    problem_statement_id: str = Field(description="Problem statement the team registered for")
    status: TeamStatus = Field(default=TeamStatus.REGISTERED, description="Team status")
    members: list[TeamMember] = Field(default_factory=list, description="Non-leader members")
    registration_date: datetime = Field(default_factory=utc_now)


class ProblemStatement(BaseModel):
    """A challenge topic that teams register against."""

    problem_statement_id: str = Field(description="Unique problem statement identifier")
    ps_number: str = Field(description="Human-facing number, e.g. 'PS-04'")
    title: str
    description: str = ""
    domain: str = ""
    team_count: int = Field(default=0, ge=0, description="Registered teams counter")
    max_teams: int = Field(default=3, ge=1, description="Registration cap")
    is_active: bool = True


class Evaluator(BaseModel):
    """An admin account; evaluators rank teams for their assigned statements."""

    evaluator_id: str = Field(description="Unique admin identifier")
    email: str
    role: AdminRole = Field(default=AdminRole.EVALUATOR)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    assigned_problem_statements: list[str] = Field(
        default_factory=list,
        description="Problem statement IDs this evaluator ranks",
    )


class DeletedTeam(BaseModel):
    """Backup of a team removed by the withdrawal flow."""

    original_team_id: str
    team_name: str
    leader: Leader
    members: list[TeamMember] = Field(default_factory=list)
    problem_statement_id: str
    problem_statement_title: str = ""
    status: TeamStatus
    registration_date: datetime
    deleted_by: str
    reason: str = ""
    deleted_at: datetime = Field(default_factory=utc_now)


class SelectionResult(BaseModel):
    """Outcome of the selection action.

    ``allowed`` is False when the team was already selected or a finalist;
    the stored status is unchanged in that case.
    """

    team_id: str
    team_name: str
    previous_status: TeamStatus
    status: TeamStatus
    allowed: bool
    message: str = ""
