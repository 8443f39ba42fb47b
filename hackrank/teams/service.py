"""Team status workflow: selection action, status updates, withdrawal."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from hackrank.errors import NotFoundError, ValidationError
from hackrank.persistence.catalog import CatalogStore
from hackrank.schemas.catalog import (
    DeletedTeam,
    SelectionResult,
    Team,
    TeamStatus,
)

logger = logging.getLogger(__name__)

# Statuses from which the selection action is disabled
_NOT_SELECTABLE = frozenset({TeamStatus.SELECTED, TeamStatus.FINALIST})

IdentityDeleter = Callable[[Team], Awaitable[None]]


def parse_status(value: str | TeamStatus) -> TeamStatus:
    """Coerce a raw status string, raising ValidationError when unknown."""
    try:
        return TeamStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in TeamStatus)
        raise ValidationError("invalid status", details=[f"expected one of: {valid}"]) from None


class TeamService:
    """Admin actions on teams.

    Status writes are single-field updates with no side effects on other
    teams or on the problem statement.
    """

    def __init__(self, catalog: CatalogStore) -> None:
        self._catalog = catalog

    async def get_team(self, team_id: str) -> Team:
        team = await self._catalog.get_team(team_id)
        if team is None:
            raise NotFoundError("Team not found")
        return team

    async def select_team(self, team_id: str) -> SelectionResult:
        """Promote a team to ``selected``.

        A team that is already selected or a finalist is left untouched
        and the result reports the action as not allowed.

        Raises:
            NotFoundError: Unknown team.
        """
        team = await self.get_team(team_id)
        if team.status in _NOT_SELECTABLE:
            logger.warning(
                "Selection of team %s ignored: already %s", team_id, team.status.value,
            )
            return SelectionResult(
                team_id=team.team_id,
                team_name=team.team_name,
                previous_status=team.status,
                status=team.status,
                allowed=False,
                message=f"Team is already {team.status.value}",
            )

        await self._catalog.update_team_status(team_id, TeamStatus.SELECTED)
        logger.info("Team %s selected (was %s)", team_id, team.status.value)
        return SelectionResult(
            team_id=team.team_id,
            team_name=team.team_name,
            previous_status=team.status,
            status=TeamStatus.SELECTED,
            allowed=True,
            message="Team selected",
        )

    async def update_status(self, team_id: str, status: str | TeamStatus) -> Team:
        """Set any of the enumerated statuses; no transition table applies.

        Raises:
            ValidationError: Unknown status value.
            NotFoundError: Unknown team.
        """
        new_status = parse_status(status)
        team = await self._catalog.update_team_status(team_id, new_status)
        if team is None:
            raise NotFoundError("Team not found")
        logger.info("Team %s status set to %s", team_id, new_status.value)
        return team

    async def teams_by_status(
        self, status: str | TeamStatus | None = None,
    ) -> dict[str, list[Team]]:
        """Teams grouped by status, for bulk selection screens."""
        wanted = parse_status(status) if status not in (None, "all") else None
        grouped: dict[str, list[Team]] = {}
        for team in await self._catalog.list_teams(status=wanted):
            grouped.setdefault(team.status.value, []).append(team)
        return grouped

    async def withdraw_team(
        self,
        team_id: str,
        deleted_by: str,
        reason: str = "Team withdrawal",
        delete_identity: IdentityDeleter | None = None,
    ) -> DeletedTeam:
        """Back up and remove a team in one transaction.

        ``delete_identity`` removes the leader's account at the identity
        provider; if it raises, nothing is written.

        Raises:
            NotFoundError: Unknown team.
        """
        team = await self.get_team(team_id)
        ps = await self._catalog.get_problem_statement(team.problem_statement_id)

        backup = DeletedTeam(
            original_team_id=team.team_id,
            team_name=team.team_name,
            leader=team.leader,
            members=team.members,
            problem_statement_id=team.problem_statement_id,
            problem_statement_title=ps.title if ps else "",
            status=team.status,
            registration_date=team.registration_date,
            deleted_by=deleted_by,
            reason=reason,
        )

        async def _before_delete() -> None:
            if delete_identity is not None:
                await delete_identity(team)

        await self._catalog.remove_team(team, backup, before_delete=_before_delete)
        logger.info("Team %s (%s) withdrawn by %s", team_id, team.team_name, deleted_by)
        return backup
