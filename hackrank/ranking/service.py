"""Evaluator ranking workflow: draft saves and finalization.

Each evaluator keeps one Evaluation per assigned problem statement. The
whole ordered list is resubmitted on every save; finalization is a
one-way transition after which the evaluation is read-only.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from hackrank.errors import (
    AccessDeniedError,
    EvaluationFinalizedError,
    NotFoundError,
    RankingValidationError,
)
from hackrank.persistence.catalog import CatalogStore
from hackrank.persistence.evaluations import EvaluationStore
from hackrank.ranking.validation import (
    teams_missing_comments,
    unknown_team_ids,
    validate_rank_sequence,
)
from hackrank.schemas.catalog import AdminRole, Evaluator, ProblemStatement, utc_now
from hackrank.schemas.evaluation import (
    Evaluation,
    RankedTeamView,
    RankingView,
    TeamRanking,
)

logger = logging.getLogger(__name__)


class RankingService:
    """Saves and finalizes evaluator rankings.

    All operations check that the evaluator exists, holds the evaluator
    role and is assigned to the problem statement.
    """

    def __init__(self, catalog: CatalogStore, evaluations: EvaluationStore) -> None:
        self._catalog = catalog
        self._evaluations = evaluations

    async def save_draft(
        self,
        evaluator_id: str,
        problem_statement_id: str,
        rankings: Sequence[TeamRanking],
    ) -> Evaluation:
        """Upsert a draft; not every team needs to be ranked."""
        return await self.save(evaluator_id, problem_statement_id, rankings, finalize=False)

    async def finalize(
        self,
        evaluator_id: str,
        problem_statement_id: str,
        rankings: Sequence[TeamRanking],
    ) -> Evaluation:
        """Lock the rankings; every team must be ranked and commented."""
        return await self.save(evaluator_id, problem_statement_id, rankings, finalize=True)

    async def save(
        self,
        evaluator_id: str,
        problem_statement_id: str,
        rankings: Sequence[TeamRanking],
        finalize: bool = False,
    ) -> Evaluation:
        """Validate and store an evaluator's ranking list.

        Raises:
            NotFoundError: Unknown evaluator or problem statement.
            AccessDeniedError: Not an evaluator, or not assigned.
            EvaluationFinalizedError: The evaluation is already finalized.
            RankingValidationError: Empty list, ranks not 1..N, teams not
                rankable under this problem statement, or (on finalize)
                teams missing from the list or missing comments.
        """
        await self._require_assignment(evaluator_id, problem_statement_id)
        await self._require_problem_statement(problem_statement_id)

        existing = await self._evaluations.get_evaluation(problem_statement_id, evaluator_id)
        if existing is not None and existing.is_finalized:
            logger.warning(
                "Rejected save on finalized evaluation %s/%s",
                problem_statement_id, evaluator_id,
            )
            raise EvaluationFinalizedError()

        if not rankings:
            raise RankingValidationError("rankings array is required")
        validate_rank_sequence(rankings)

        teams = await self._catalog.list_evaluable_teams(problem_statement_id)
        invalid = unknown_team_ids(rankings, teams)
        if invalid:
            raise RankingValidationError("invalid teams in ranking", details=invalid)

        if finalize:
            missing = teams_missing_comments(rankings, teams)
            if missing:
                raise RankingValidationError(
                    "comments are required for every team before finalizing",
                    details=missing,
                )

        now = utc_now()
        evaluation = Evaluation(
            problem_statement_id=problem_statement_id,
            evaluator_id=evaluator_id,
            rankings=sorted(
                (r.model_copy(update={"evaluated_at": now}) for r in rankings),
                key=lambda r: r.rank,
            ),
            is_finalized=finalize,
            submitted_at=now if finalize else None,
            total_teams=len(teams),
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self._evaluations.upsert_evaluation(evaluation)

        logger.info(
            "%s rankings for %s by %s (%d/%d teams)",
            "Finalized" if finalize else "Saved draft",
            problem_statement_id, evaluator_id, len(rankings), len(teams),
        )
        return evaluation

    async def get_ranking_view(
        self, evaluator_id: str, problem_statement_id: str,
    ) -> RankingView:
        """Teams to rank with the evaluator's current ranks, scores and comments.

        Ranked teams come first in rank order, then unranked teams by name.
        """
        await self._require_assignment(evaluator_id, problem_statement_id)
        ps = await self._require_problem_statement(problem_statement_id)

        teams = await self._catalog.list_evaluable_teams(problem_statement_id)
        evaluation = await self._evaluations.get_evaluation(problem_statement_id, evaluator_id)

        views: list[RankedTeamView] = []
        for team in teams:
            ranking = evaluation.ranking_for(team.team_id) if evaluation else None
            views.append(RankedTeamView(
                team_id=team.team_id,
                team_name=team.team_name,
                leader_name=team.leader.name,
                leader_email=team.leader.email,
                status=team.status.value,
                current_rank=ranking.rank if ranking else None,
                score=ranking.score if ranking else None,
                comments=ranking.comments if ranking else None,
            ))
        views.sort(key=lambda v: (v.current_rank is None, v.current_rank or 0))

        return RankingView(
            problem_statement_id=ps.problem_statement_id,
            problem_statement_title=ps.title,
            teams=views,
            is_evaluated=evaluation is not None,
            is_finalized=bool(evaluation and evaluation.is_finalized),
            submitted_at=evaluation.submitted_at if evaluation else None,
        )

    async def assign(
        self, evaluator_id: str, problem_statement_ids: Sequence[str],
    ) -> Evaluator:
        """Replace the set of problem statements an evaluator ranks.

        Raises:
            NotFoundError: Evaluator unknown or inactive, or a problem
                statement unknown or inactive.
        """
        evaluator = await self._catalog.get_evaluator(evaluator_id)
        if (
            evaluator is None
            or evaluator.role != AdminRole.EVALUATOR
            or not evaluator.is_active
        ):
            raise NotFoundError("Evaluator not found or inactive")

        unique_ids = list(dict.fromkeys(problem_statement_ids))
        missing = []
        for ps_id in unique_ids:
            ps = await self._catalog.get_problem_statement(ps_id)
            if ps is None or not ps.is_active:
                missing.append(ps_id)
        if missing:
            raise NotFoundError(
                "One or more problem statements not found or inactive",
                details=missing,
            )

        await self._catalog.set_assignments(evaluator_id, unique_ids)
        return evaluator.model_copy(update={"assigned_problem_statements": unique_ids})

    async def require_evaluator(self, evaluator_id: str) -> Evaluator:
        """Return the evaluator account, or raise if it cannot rank.

        Raises:
            NotFoundError: Unknown ID.
            AccessDeniedError: Not an active evaluator.
        """
        evaluator = await self._catalog.get_evaluator(evaluator_id)
        if evaluator is None:
            raise NotFoundError("Evaluator not found")
        if evaluator.role != AdminRole.EVALUATOR or not evaluator.is_active:
            raise AccessDeniedError("Evaluator access required")
        return evaluator

    async def _require_assignment(
        self, evaluator_id: str, problem_statement_id: str,
    ) -> Evaluator:
        evaluator = await self.require_evaluator(evaluator_id)
        if problem_statement_id not in evaluator.assigned_problem_statements:
            raise AccessDeniedError("Problem statement not assigned to this evaluator")
        return evaluator

    async def _require_problem_statement(self, problem_statement_id: str) -> ProblemStatement:
        ps = await self._catalog.get_problem_statement(problem_statement_id)
        if ps is None:
            raise NotFoundError("Problem statement not found")
        return ps
