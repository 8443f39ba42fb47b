"""Evaluation store: the ranking repository.

Wraps the evaluations and evaluation_rankings tables with Pydantic
serialization. One Evaluation per (problem statement, evaluator) pair;
saves are whole-document upserts, so concurrent writers resolve as
last-write-wins.
"""

from __future__ import annotations

import logging
from datetime import datetime

import aiosqlite

from hackrank.schemas.evaluation import Evaluation, TeamRanking

logger = logging.getLogger(__name__)


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class EvaluationStore:
    """Persistent evaluation store backed by SQLite.

    All methods are async and operate on an aiosqlite connection
    initialized by database.init_db(). With ``autocommit=False`` an upsert
    leaves its writes in the open transaction for the caller to commit.
    """

    def __init__(self, db: aiosqlite.Connection, autocommit: bool = True) -> None:
        self._db = db
        self._autocommit = autocommit

    async def get_evaluation(
        self, problem_statement_id: str, evaluator_id: str,
    ) -> Evaluation | None:
        """Return the evaluation for the pair, or None if nothing was saved."""
        async with self._db.execute(
            "SELECT * FROM evaluations"
            " WHERE problem_statement_id = ? AND evaluator_id = ?",
            (problem_statement_id, evaluator_id),
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        return await self._row_to_evaluation(row)

    async def upsert_evaluation(self, evaluation: Evaluation) -> None:
        """Insert or replace an evaluation and its full ranking list.

        ``created_at`` of an existing row is preserved; everything else,
        including the ranking list, is overwritten. The parent row and its
        rankings are written atomically: a failure rolls back and re-raises,
        leaving the previously stored evaluation intact.
        """
        try:
            await self._db.execute(
                """
                INSERT INTO evaluations
                    (problem_statement_id, evaluator_id, is_finalized, submitted_at,
                     total_teams, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (problem_statement_id, evaluator_id) DO UPDATE SET
                    is_finalized = excluded.is_finalized,
                    submitted_at = excluded.submitted_at,
                    total_teams  = excluded.total_teams,
                    updated_at   = excluded.updated_at
                """,
                (
                    evaluation.problem_statement_id,
                    evaluation.evaluator_id,
                    int(evaluation.is_finalized),
                    evaluation.submitted_at.isoformat() if evaluation.submitted_at else None,
                    evaluation.total_teams,
                    evaluation.created_at.isoformat(),
                    evaluation.updated_at.isoformat(),
                ),
            )

            # Replace child rows
            await self._db.execute(
                "DELETE FROM evaluation_rankings"
                " WHERE problem_statement_id = ? AND evaluator_id = ?",
                (evaluation.problem_statement_id, evaluation.evaluator_id),
            )
            await self._db.executemany(
                """
                INSERT INTO evaluation_rankings
                    (problem_statement_id, evaluator_id, team_id, rank, score,
                     comments, evaluated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        evaluation.problem_statement_id,
                        evaluation.evaluator_id,
                        r.team_id,
                        r.rank,
                        r.score,
                        r.comments,
                        r.evaluated_at.isoformat(),
                    )
                    for r in evaluation.rankings
                ],
            )
            if self._autocommit:
                await self._db.commit()
        except Exception:
            if self._autocommit:
                await self._db.rollback()
                logger.warning(
                    "Rolled back evaluation save %s/%s",
                    evaluation.problem_statement_id,
                    evaluation.evaluator_id,
                )
            raise

        logger.debug(
            "Saved evaluation %s/%s (%d rankings)",
            evaluation.problem_statement_id,
            evaluation.evaluator_id,
            len(evaluation.rankings),
        )

    async def list_evaluations_for_problem_statement(
        self, problem_statement_id: str,
    ) -> list[Evaluation]:
        """All evaluations saved for a problem statement, drafts included."""
        async with self._db.execute(
            "SELECT * FROM evaluations WHERE problem_statement_id = ?"
            " ORDER BY created_at",
            (problem_statement_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [await self._row_to_evaluation(row) for row in rows]

    async def list_evaluations_for_evaluator(
        self, evaluator_id: str,
    ) -> list[Evaluation]:
        """All evaluations saved by one evaluator, drafts included."""
        async with self._db.execute(
            "SELECT * FROM evaluations WHERE evaluator_id = ?"
            " ORDER BY created_at",
            (evaluator_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [await self._row_to_evaluation(row) for row in rows]

    async def _row_to_evaluation(self, row: aiosqlite.Row) -> Evaluation:
        """Convert an evaluations row + child rows into an Evaluation."""
        rankings: list[TeamRanking] = []
        async with self._db.execute(
            "SELECT * FROM evaluation_rankings"
            " WHERE problem_statement_id = ? AND evaluator_id = ?"
            " ORDER BY rank",
            (row["problem_statement_id"], row["evaluator_id"]),
        ) as cursor:
            async for rrow in cursor:
                rankings.append(TeamRanking(
                    team_id=rrow["team_id"],
                    rank=rrow["rank"],
                    score=rrow["score"],
                    comments=rrow["comments"],
                    evaluated_at=datetime.fromisoformat(rrow["evaluated_at"]),
                ))

        return Evaluation(
            problem_statement_id=row["problem_statement_id"],
            evaluator_id=row["evaluator_id"],
            rankings=rankings,
            is_finalized=bool(row["is_finalized"]),
            submitted_at=_parse_dt(row["submitted_at"]),
            total_teams=row["total_teams"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
