"""FastAPI application for hackrank.

JSON route handlers for the evaluator ranking screens, the super-admin
consensus dashboards, and team status actions. One aiosqlite connection
is opened for the lifetime of the app.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import aiosqlite
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hackrank import __version__
from hackrank.api.models import (
    AssignmentRequest,
    SaveRankingsRequest,
    StatusUpdateRequest,
    WithdrawRequest,
)
from hackrank.consensus.engine import ConsensusEngine
from hackrank.errors import HackrankError
from hackrank.persistence.catalog import CatalogStore
from hackrank.persistence.database import close_db, init_db
from hackrank.persistence.evaluations import EvaluationStore
from hackrank.ranking.service import RankingService
from hackrank.schemas.config import AppConfig
from hackrank.teams.service import IdentityDeleter, TeamService

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_db(request: Request) -> aiosqlite.Connection:
    return request.app.state.db


def get_catalog(db: aiosqlite.Connection = Depends(get_db)) -> CatalogStore:
    return CatalogStore(db)


def get_evaluation_store(db: aiosqlite.Connection = Depends(get_db)) -> EvaluationStore:
    return EvaluationStore(db)


def get_ranking_service(
    catalog: CatalogStore = Depends(get_catalog),
    evaluations: EvaluationStore = Depends(get_evaluation_store),
) -> RankingService:
    return RankingService(catalog, evaluations)


def get_consensus_engine(
    request: Request,
    catalog: CatalogStore = Depends(get_catalog),
    evaluations: EvaluationStore = Depends(get_evaluation_store),
) -> ConsensusEngine:
    config: AppConfig = request.app.state.config
    return ConsensusEngine(catalog, evaluations, config.consensus)


def get_team_service(catalog: CatalogStore = Depends(get_catalog)) -> TeamService:
    return TeamService(catalog)


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


def create_app(
    config: AppConfig | None = None,
    delete_identity: IdentityDeleter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Application settings; defaults apply when omitted.
        delete_identity: Optional hook that removes a team leader's
            identity-provider account during withdrawal.
    """
    config = config or AppConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = await init_db(config.database.path)
        try:
            yield
        finally:
            await close_db(app.state.db)

    app = FastAPI(
        title="hackrank API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.delete_identity = delete_identity

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HackrankError)
    async def _handle_app_error(request: Request, exc: HackrankError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request %s failed: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message, "details": exc.details},
        )

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation(
        request: Request, exc: RequestValidationError,
    ) -> JSONResponse:
        details = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        logger.debug("Rejected request body for %s: %s", request.url.path, details)
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "invalid request", "details": details},
        )

    _register_evaluator_routes(app)
    _register_ranking_routes(app)
    _register_team_routes(app)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# ---------------------------------------------------------------------------
# Evaluator screens
# ---------------------------------------------------------------------------


def _register_evaluator_routes(app: FastAPI) -> None:

    @app.get("/api/evaluators/{evaluator_id}/dashboard")
    async def evaluator_dashboard(
        evaluator_id: str,
        service: RankingService = Depends(get_ranking_service),
        engine: ConsensusEngine = Depends(get_consensus_engine),
    ) -> dict[str, Any]:
        """The evaluator's assigned problem statements and their status."""
        evaluator = await service.require_evaluator(evaluator_id)
        statuses = await engine.assignment_statuses(evaluator)
        return {
            "success": True,
            "evaluator": {
                "evaluator_id": evaluator.evaluator_id,
                "email": evaluator.email,
                "role": evaluator.role.value,
            },
            "assigned_problem_statements": [s.model_dump(mode="json") for s in statuses],
        }

    @app.get("/api/evaluators/{evaluator_id}/rankings/{problem_statement_id}")
    async def get_rankings(
        evaluator_id: str,
        problem_statement_id: str,
        service: RankingService = Depends(get_ranking_service),
    ) -> dict[str, Any]:
        """Teams to rank, with the evaluator's current ranking if any."""
        view = await service.get_ranking_view(evaluator_id, problem_statement_id)
        return {"success": True, **view.model_dump(mode="json")}

    @app.post("/api/evaluators/{evaluator_id}/rankings/{problem_statement_id}")
    async def save_rankings(
        evaluator_id: str,
        problem_statement_id: str,
        body: SaveRankingsRequest,
        service: RankingService = Depends(get_ranking_service),
    ) -> dict[str, Any]:
        """Save a draft or finalize the evaluator's rankings."""
        evaluation = await service.save(
            evaluator_id,
            problem_statement_id,
            [entry.to_ranking() for entry in body.rankings],
            finalize=body.is_finalized,
        )
        return {
            "success": True,
            "message": (
                "Rankings finalized successfully"
                if evaluation.is_finalized
                else "Rankings saved as draft"
            ),
            "evaluation": evaluation.model_dump(mode="json"),
        }

    @app.put("/api/evaluators/{evaluator_id}/assignments")
    async def assign_problem_statements(
        evaluator_id: str,
        body: AssignmentRequest,
        service: RankingService = Depends(get_ranking_service),
    ) -> dict[str, Any]:
        """Replace the problem statements assigned to an evaluator."""
        evaluator = await service.assign(evaluator_id, body.problem_statement_ids)
        return {
            "success": True,
            "message": "Problem statements assigned successfully",
            "evaluator": evaluator.model_dump(mode="json"),
        }


# ---------------------------------------------------------------------------
# Super-admin ranking dashboards
# ---------------------------------------------------------------------------


def _register_ranking_routes(app: FastAPI) -> None:

    @app.get("/api/rankings/problem-statements")
    async def rankings_overview(
        engine: ConsensusEngine = Depends(get_consensus_engine),
    ) -> dict[str, Any]:
        """Evaluation progress and conflicts for every problem statement."""
        overview = await engine.overview()
        return {
            "success": True,
            "problem_statements": [o.model_dump(mode="json") for o in overview],
        }

    @app.get("/api/rankings/problem-statements/{problem_statement_id}")
    async def problem_statement_rankings(
        problem_statement_id: str,
        engine: ConsensusEngine = Depends(get_consensus_engine),
    ) -> dict[str, Any]:
        """Every evaluator's ranking plus the per-team consensus."""
        report = await engine.problem_statement_report(problem_statement_id)
        return {"success": True, **report.model_dump(mode="json")}

    @app.get("/api/rankings/evaluators")
    async def evaluators_progress(
        engine: ConsensusEngine = Depends(get_consensus_engine),
    ) -> dict[str, Any]:
        progress = await engine.evaluator_progress()
        return {"success": True, "evaluators": [p.model_dump(mode="json") for p in progress]}

    @app.get("/api/rankings/evaluators/{evaluator_id}")
    async def evaluator_rankings(
        evaluator_id: str,
        engine: ConsensusEngine = Depends(get_consensus_engine),
    ) -> dict[str, Any]:
        detail = await engine.evaluator_detail(evaluator_id)
        return {"success": True, "evaluator": detail.model_dump(mode="json")}


# ---------------------------------------------------------------------------
# Team actions
# ---------------------------------------------------------------------------


def _register_team_routes(app: FastAPI) -> None:

    @app.get("/api/teams/selection")
    async def teams_for_selection(
        status: str | None = None,
        service: TeamService = Depends(get_team_service),
    ) -> dict[str, Any]:
        """Teams grouped by status, with per-status counts."""
        grouped = await service.teams_by_status(status)
        return {
            "success": True,
            "teams_by_status": {
                key: [t.model_dump(mode="json") for t in teams]
                for key, teams in grouped.items()
            },
            "status_counts": {key: len(teams) for key, teams in grouped.items()},
            "total_teams": sum(len(teams) for teams in grouped.values()),
        }

    @app.post("/api/teams/{team_id}/select")
    async def select_team(
        team_id: str,
        service: TeamService = Depends(get_team_service),
    ) -> JSONResponse:
        """Selection action; answers 409 when the team is already selected or a finalist."""
        result = await service.select_team(team_id)
        return JSONResponse(
            status_code=200 if result.allowed else 409,
            content={"success": result.allowed, "selection": result.model_dump(mode="json")},
        )

    @app.patch("/api/teams/{team_id}/status")
    async def update_team_status(
        team_id: str,
        body: StatusUpdateRequest,
        service: TeamService = Depends(get_team_service),
    ) -> dict[str, Any]:
        team = await service.update_status(team_id, body.status)
        return {
            "success": True,
            "message": "Team status updated successfully",
            "team": team.model_dump(mode="json"),
        }

    @app.post("/api/teams/{team_id}/withdraw")
    async def withdraw_team(
        team_id: str,
        body: WithdrawRequest,
        request: Request,
        service: TeamService = Depends(get_team_service),
    ) -> dict[str, Any]:
        """Back up and delete a team in a single transaction."""
        backup = await service.withdraw_team(
            team_id,
            deleted_by=body.deleted_by,
            reason=body.reason,
            delete_identity=request.app.state.delete_identity,
        )
        return {
            "success": True,
            "message": "Team withdrawn successfully",
            "deleted_team": backup.model_dump(mode="json"),
        }
