"""Consensus engine for hackrank.

Gathers teams, assigned evaluators and saved evaluations from the stores
and runs the pure consensus and aggregation functions over them to
produce the super-admin ranking views.
"""

from __future__ import annotations

import logging

from hackrank.consensus.aggregation import (
    evaluator_progress,
    problem_statement_progress,
    summarize_problem_statement,
)
from hackrank.consensus.calculator import compute_consensus
from hackrank.errors import NotFoundError
from hackrank.persistence.catalog import CatalogStore
from hackrank.persistence.evaluations import EvaluationStore
from hackrank.schemas.catalog import AdminRole, Evaluator
from hackrank.schemas.config import ConsensusConfig
from hackrank.schemas.consensus import (
    ConsensusReport,
    EvaluatorProgress,
    EvaluatorRanking,
    ProblemStatementOverview,
    ProblemStatementProgress,
)
from hackrank.schemas.evaluation import TeamRanking

logger = logging.getLogger(__name__)


class ConsensusEngine:
    """Builds consensus reports and evaluator progress views.

    Only finalized evaluations feed the consensus unless the config's
    ``include_drafts`` flag is set.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        evaluations: EvaluationStore,
        config: ConsensusConfig | None = None,
    ) -> None:
        self._catalog = catalog
        self._evaluations = evaluations
        self._config = config or ConsensusConfig()

    async def problem_statement_report(self, problem_statement_id: str) -> ConsensusReport:
        """Full consensus analysis for one problem statement.

        Raises:
            NotFoundError: If the problem statement does not exist.
        """
        ps = await self._catalog.get_problem_statement(problem_statement_id)
        if ps is None:
            raise NotFoundError("Problem statement not found")

        teams = await self._catalog.list_evaluable_teams(problem_statement_id)
        evaluators = await self._catalog.list_evaluators_for_problem_statement(
            problem_statement_id,
        )
        evaluations = await self._evaluations.list_evaluations_for_problem_statement(
            problem_statement_id,
        )
        by_evaluator = {e.evaluator_id: e for e in evaluations}

        evaluator_rankings: list[EvaluatorRanking] = []
        contributing: dict[str, list[TeamRanking]] = {}
        labels: dict[str, str] = {}
        for evaluator in evaluators:
            evaluation = by_evaluator.get(evaluator.evaluator_id)
            labels[evaluator.evaluator_id] = evaluator.email
            evaluator_rankings.append(EvaluatorRanking(
                evaluator_id=evaluator.evaluator_id,
                evaluator_email=evaluator.email,
                is_finalized=bool(evaluation and evaluation.is_finalized),
                submitted_at=evaluation.submitted_at if evaluation else None,
                rankings=evaluation.sorted_rankings() if evaluation else None,
            ))
            if evaluation and (evaluation.is_finalized or self._config.include_drafts):
                contributing[evaluator.evaluator_id] = evaluation.sorted_rankings()

        rows = compute_consensus(
            teams, contributing, labels, self._config.thresholds,
        )
        statistics = summarize_problem_statement(
            rows, [e.evaluator_id for e in evaluators], evaluations,
        )
        logger.debug(
            "Consensus for %s: %d teams, %d contributing evaluators, %d conflicts",
            problem_statement_id, len(rows), len(contributing), statistics.conflicting_teams,
        )

        return ConsensusReport(
            problem_statement_id=ps.problem_statement_id,
            title=ps.title,
            description=ps.description,
            statistics=statistics,
            evaluator_rankings=evaluator_rankings,
            consensus_analysis=rows,
        )

    async def overview(self) -> list[ProblemStatementOverview]:
        """Ranking overview of every active problem statement.

        Statements without teams or without assigned evaluators are left out.
        """
        overview: list[ProblemStatementOverview] = []
        for ps in await self._catalog.list_problem_statements(active_only=True):
            report = await self.problem_statement_report(ps.problem_statement_id)
            stats = report.statistics
            if stats.total_teams == 0 or stats.total_evaluators == 0:
                continue
            overview.append(ProblemStatementOverview(
                problem_statement_id=ps.problem_statement_id,
                ps_number=ps.ps_number,
                title=ps.title,
                description=ps.description,
                assigned_evaluators=stats.total_evaluators,
                completed_evaluations=stats.completed_evaluations,
                total_teams=stats.total_teams,
                conflicting_teams=stats.conflicting_teams,
            ))
        return overview

    async def evaluator_progress(self) -> list[EvaluatorProgress]:
        """Progress of every active evaluator."""
        evaluators = await self._catalog.list_evaluators(role=AdminRole.EVALUATOR)
        return [await self._progress_for(e) for e in evaluators]

    async def evaluator_detail(self, evaluator_id: str) -> EvaluatorProgress:
        """Progress of one evaluator.

        Raises:
            NotFoundError: If the ID is unknown or not an evaluator account.
        """
        evaluator = await self._catalog.get_evaluator(evaluator_id)
        if evaluator is None or evaluator.role != AdminRole.EVALUATOR:
            raise NotFoundError("Evaluator not found")
        return await self._progress_for(evaluator)

    async def assignment_statuses(self, evaluator: Evaluator) -> list[ProblemStatementProgress]:
        """Per-assignment status for one evaluator, in assignment order."""
        evaluations = {
            e.problem_statement_id: e
            for e in await self._evaluations.list_evaluations_for_evaluator(
                evaluator.evaluator_id,
            )
        }
        statuses: list[ProblemStatementProgress] = []
        for ps_id in evaluator.assigned_problem_statements:
            ps = await self._catalog.get_problem_statement(ps_id)
            if ps is None:
                continue
            teams = await self._catalog.list_evaluable_teams(ps_id)
            statuses.append(
                problem_statement_progress(ps, len(teams), evaluations.get(ps_id)),
            )
        return statuses

    async def _progress_for(self, evaluator: Evaluator) -> EvaluatorProgress:
        return evaluator_progress(evaluator, await self.assignment_statuses(evaluator))
