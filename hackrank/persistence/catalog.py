"""Catalog store for problem statements, teams, and evaluator accounts.

Provides the CatalogStore class that wraps the catalog tables with
Pydantic schema serialization/deserialization, plus the transactional
team removal used by the withdrawal flow.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

import aiosqlite

from hackrank.schemas.catalog import (
    AdminRole,
    DeletedTeam,
    Evaluator,
    Leader,
    ProblemStatement,
    Team,
    TeamMember,
    TeamStatus,
)

logger = logging.getLogger(__name__)


class CatalogStore:
    """Persistent catalog store backed by SQLite.

    With ``autocommit=False`` writes stay in the open transaction and the
    caller commits or rolls back (used for bulk seeding).
    """

    def __init__(self, db: aiosqlite.Connection, autocommit: bool = True) -> None:
        self._db = db
        self._autocommit = autocommit

    # ── Problem statements ──────────────────────────────────────────

    async def save_problem_statement(self, ps: ProblemStatement) -> None:
        """Insert or update a problem statement."""
        await self._db.execute(
            """
            INSERT INTO problem_statements
                (problem_statement_id, ps_number, title, description, domain,
                 team_count, max_teams, is_active)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (problem_statement_id) DO UPDATE SET
                ps_number   = excluded.ps_number,
                title       = excluded.title,
                description = excluded.description,
                domain      = excluded.domain,
                team_count  = excluded.team_count,
                max_teams   = excluded.max_teams,
                is_active   = excluded.is_active
            """,
            (
                ps.problem_statement_id,
                ps.ps_number,
                ps.title,
                ps.description,
                ps.domain,
                ps.team_count,
                ps.max_teams,
                int(ps.is_active),
            ),
        )
        await self._commit()

    async def get_problem_statement(self, problem_statement_id: str) -> ProblemStatement | None:
        async with self._db.execute(
            "SELECT * FROM problem_statements WHERE problem_statement_id = ?",
            (problem_statement_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_problem_statement(row) if row else None

    async def list_problem_statements(self, active_only: bool = True) -> list[ProblemStatement]:
        where = "WHERE is_active = 1" if active_only else ""
        async with self._db.execute(
            f"SELECT * FROM problem_statements {where} ORDER BY ps_number",  # noqa: S608
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_problem_statement(row) for row in rows]

    # ── Evaluators ──────────────────────────────────────────────────

    async def save_evaluator(self, evaluator: Evaluator) -> None:
        """Insert or update an admin account and replace its assignments."""
        await self._db.execute(
            """
            INSERT INTO evaluators (evaluator_id, email, role, is_active, created_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (evaluator_id) DO UPDATE SET
                email     = excluded.email,
                role      = excluded.role,
                is_active = excluded.is_active
            """,
            (
                evaluator.evaluator_id,
                evaluator.email.lower(),
                evaluator.role.value,
                int(evaluator.is_active),
                evaluator.created_at.isoformat(),
            ),
        )
        await self._replace_assignments(
            evaluator.evaluator_id, evaluator.assigned_problem_statements,
        )
        await self._commit()

    async def set_assignments(
        self, evaluator_id: str, problem_statement_ids: list[str],
    ) -> None:
        """Replace the problem statements assigned to an evaluator."""
        await self._replace_assignments(evaluator_id, problem_statement_ids)
        await self._commit()
        logger.info(
            "Assigned %d problem statement(s) to evaluator %s",
            len(problem_statement_ids), evaluator_id,
        )

    async def get_evaluator(self, evaluator_id: str) -> Evaluator | None:
        async with self._db.execute(
            "SELECT * FROM evaluators WHERE evaluator_id = ?",
            (evaluator_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        return await self._row_to_evaluator(row)

    async def list_evaluators(
        self,
        role: AdminRole | None = AdminRole.EVALUATOR,
        active_only: bool = True,
    ) -> list[Evaluator]:
        conditions: list[str] = []
        params: list[object] = []
        if role is not None:
            conditions.append("role = ?")
            params.append(role.value)
        if active_only:
            conditions.append("is_active = 1")
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        async with self._db.execute(
            f"SELECT * FROM evaluators {where} ORDER BY email",  # noqa: S608
            params,
        ) as cursor:
            rows = await cursor.fetchall()
        return [await self._row_to_evaluator(row) for row in rows]

    async def list_evaluators_for_problem_statement(
        self, problem_statement_id: str,
    ) -> list[Evaluator]:
        """Active evaluators assigned to a problem statement."""
        async with self._db.execute(
            """
            SELECT e.* FROM evaluators e
            JOIN evaluator_assignments a ON a.evaluator_id = e.evaluator_id
            WHERE a.problem_statement_id = ?
              AND e.role = ? AND e.is_active = 1
            ORDER BY e.email
            """,
            (problem_statement_id, AdminRole.EVALUATOR.value),
        ) as cursor:
            rows = await cursor.fetchall()
        return [await self._row_to_evaluator(row) for row in rows]

    # ── Teams ───────────────────────────────────────────────────────

    async def add_team(self, team: Team) -> None:
        """Register a team and bump its problem statement's team counter."""
        await self._db.execute(
            """
            INSERT INTO teams
                (team_id, team_name, leader_name, leader_email,
                 problem_statement_id, status, members_json, registration_date)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                team.team_id,
                team.team_name,
                team.leader.name,
                team.leader.email.lower(),
                team.problem_statement_id,
                team.status.value,
                json.dumps([m.model_dump() for m in team.members]),
                team.registration_date.isoformat(),
            ),
        )
        await self._db.execute(
            "UPDATE problem_statements SET team_count = team_count + 1"
            " WHERE problem_statement_id = ?",
            (team.problem_statement_id,),
        )
        await self._commit()

    async def get_team(self, team_id: str) -> Team | None:
        async with self._db.execute(
            "SELECT * FROM teams WHERE team_id = ?", (team_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_team(row) if row else None

    async def list_teams(
        self,
        problem_statement_id: str | None = None,
        status: TeamStatus | None = None,
        include_rejected: bool = True,
    ) -> list[Team]:
        """List teams, optionally filtered by problem statement and status.

        Sorted by team name.
        """
        conditions: list[str] = []
        params: list[object] = []
        if problem_statement_id is not None:
            conditions.append("problem_statement_id = ?")
            params.append(problem_statement_id)
        if status is not None:
            conditions.append("status = ?")
            params.append(status.value)
        if not include_rejected:
            conditions.append("status != ?")
            params.append(TeamStatus.REJECTED.value)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        async with self._db.execute(
            f"SELECT * FROM teams {where} ORDER BY team_name",  # noqa: S608
            params,
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_team(row) for row in rows]

    async def list_evaluable_teams(self, problem_statement_id: str) -> list[Team]:
        """Teams under a problem statement that can be ranked (not rejected)."""
        return await self.list_teams(problem_statement_id, include_rejected=False)

    async def update_team_status(self, team_id: str, status: TeamStatus) -> Team | None:
        """Write a team's status. Returns the updated team, or None if unknown."""
        cursor = await self._db.execute(
            "UPDATE teams SET status = ? WHERE team_id = ?",
            (status.value, team_id),
        )
        await self._commit()
        if cursor.rowcount == 0:
            return None
        return await self.get_team(team_id)

    async def remove_team(
        self,
        team: Team,
        backup: DeletedTeam,
        before_delete: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        """Back up and delete a team in a single transaction.

        Writes the DeletedTeam backup, runs ``before_delete`` (e.g. the
        identity-provider account removal), decrements the problem
        statement's team counter and deletes the team row. Any failure
        rolls the whole sequence back and re-raises.
        """
        try:
            await self._db.execute(
                """
                INSERT INTO deleted_teams
                    (original_team_id, team_name, payload_json, deleted_by,
                     reason, deleted_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    backup.original_team_id,
                    backup.team_name,
                    backup.model_dump_json(),
                    backup.deleted_by,
                    backup.reason,
                    backup.deleted_at.isoformat(),
                ),
            )
            if before_delete is not None:
                await before_delete()
            await self._db.execute(
                "UPDATE problem_statements"
                " SET team_count = MAX(team_count - 1, 0)"
                " WHERE problem_statement_id = ?",
                (team.problem_statement_id,),
            )
            await self._db.execute(
                "DELETE FROM teams WHERE team_id = ?", (team.team_id,),
            )
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            logger.warning("Rolled back removal of team %s", team.team_id)
            raise

    async def list_deleted_teams(self) -> list[DeletedTeam]:
        async with self._db.execute(
            "SELECT payload_json FROM deleted_teams ORDER BY id",
        ) as cursor:
            rows = await cursor.fetchall()
        return [DeletedTeam.model_validate_json(row["payload_json"]) for row in rows]

    # ── Helpers ─────────────────────────────────────────────────────

    async def _commit(self) -> None:
        if self._autocommit:
            await self._db.commit()

    async def _replace_assignments(
        self, evaluator_id: str, problem_statement_ids: list[str],
    ) -> None:
        await self._db.execute(
            "DELETE FROM evaluator_assignments WHERE evaluator_id = ?",
            (evaluator_id,),
        )
        await self._db.executemany(
            "INSERT OR IGNORE INTO evaluator_assignments"
            " (evaluator_id, problem_statement_id) VALUES (?, ?)",
            [(evaluator_id, ps_id) for ps_id in problem_statement_ids],
        )

    async def _row_to_evaluator(self, row: aiosqlite.Row) -> Evaluator:
        """Convert an evaluators row + assignment rows into an Evaluator."""
        async with self._db.execute(
            "SELECT problem_statement_id FROM evaluator_assignments"
            " WHERE evaluator_id = ? ORDER BY problem_statement_id",
            (row["evaluator_id"],),
        ) as cursor:
            assigned = [arow["problem_statement_id"] async for arow in cursor]

        return Evaluator(
            evaluator_id=row["evaluator_id"],
            email=row["email"],
            role=row["role"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            assigned_problem_statements=assigned,
        )


def _row_to_problem_statement(row: aiosqlite.Row) -> ProblemStatement:
    return ProblemStatement(
        problem_statement_id=row["problem_statement_id"],
        ps_number=row["ps_number"],
        title=row["title"],
        description=row["description"],
        domain=row["domain"],
        team_count=row["team_count"],
        max_teams=row["max_teams"],
        is_active=bool(row["is_active"]),
    )


def _row_to_team(row: aiosqlite.Row) -> Team:
    return Team(
        team_id=row["team_id"],
        team_name=row["team_name"],
        leader=Leader(name=row["leader_name"], email=row["leader_email"]),
        problem_statement_id=row["problem_statement_id"],
        status=row["status"],
        members=[TeamMember(**m) for m in json.loads(row["members_json"])],
        registration_date=datetime.fromisoformat(row["registration_date"]),
    )
