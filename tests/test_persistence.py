"""Tests for hackrank.persistence.

Covers database initialization, CatalogStore and EvaluationStore CRUD
operations, the transactional team removal, and the JSON/Markdown
consensus report exporters.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from hackrank.consensus.calculator import compute_consensus
from hackrank.persistence.catalog import CatalogStore
from hackrank.persistence.database import close_db, init_db
from hackrank.persistence.evaluations import EvaluationStore
from hackrank.persistence.export import export_json, export_markdown
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
from hackrank.schemas.consensus import (
    ConsensusReport,
    EvaluatorRanking,
    ProblemStatementStatistics,
)
from hackrank.schemas.evaluation import Evaluation, TeamRanking

# ── Factories ──────────────────────────────────────────────────────


def _make_ps(ps_id: str = "ps-1", number: str = "PS-01", **overrides) -> ProblemStatement:
    defaults = {
        "problem_statement_id": ps_id,
        "ps_number": number,
        "title": "Smart Campus",
        "description": "Campus services",
        "domain": "IoT",
    }
    defaults.update(overrides)
    return ProblemStatement(**defaults)


def _make_team(team_id: str, ps_id: str = "ps-1", **overrides) -> Team:
    defaults = {
        "team_id": team_id,
        "team_name": f"Team {team_id}",
        "leader": Leader(name=f"Lead {team_id}", email=f"{team_id.lower()}@example.com"),
        "problem_statement_id": ps_id,
        "members": [TeamMember(name="Member", email="member@example.com", college="IIT")],
        "registration_date": datetime(2026, 2, 1, 9, 30, tzinfo=UTC),
    }
    defaults.update(overrides)
    return Team(**defaults)


def _make_evaluation(
    evaluator_id: str = "e1",
    finalized: bool = False,
    ranks: list[tuple[str, int]] | None = None,
) -> Evaluation:
    stamp = datetime(2026, 2, 16, 10, 0, tzinfo=UTC)
    return Evaluation(
        problem_statement_id="ps-1",
        evaluator_id=evaluator_id,
        rankings=[
            TeamRanking(team_id=t, rank=r, score=70.0 + r, comments=f"note {t}",
                        evaluated_at=stamp)
            for t, r in (ranks or [("A", 1), ("B", 2)])
        ],
        is_finalized=finalized,
        submitted_at=stamp if finalized else None,
        total_teams=2,
        created_at=stamp,
        updated_at=stamp,
    )


def _make_report() -> ConsensusReport:
    teams = [_make_team("A"), _make_team("B"), _make_team("C")]
    rankings = {
        "e1": [TeamRanking(team_id="A", rank=1, score=90, comments="Great UX"),
               TeamRanking(team_id="B", rank=2)],
        "e2": [TeamRanking(team_id="B", rank=1), TeamRanking(team_id="A", rank=2)],
    }
    rows = compute_consensus(teams, rankings, {"e1": "one@example.com", "e2": "two@example.com"})
    return ConsensusReport(
        problem_statement_id="ps-1",
        title="Smart Campus",
        description="Campus services",
        statistics=ProblemStatementStatistics(
            total_teams=3, total_evaluators=2, completed_evaluations=2,
        ),
        evaluator_rankings=[
            EvaluatorRanking(evaluator_id="e1", evaluator_email="one@example.com",
                             is_finalized=True, rankings=rankings["e1"]),
        ],
        consensus_analysis=rows,
    )


# ── Database Initialization Tests ─────────────────────────────────


@pytest.mark.asyncio
async def test_init_db_creates_tables(tmp_path):
    db = await init_db(str(tmp_path / "test.db"))

    async with db.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ) as cursor:
        tables = [row[0] for row in await cursor.fetchall()]

    for name in (
        "problem_statements",
        "evaluators",
        "evaluator_assignments",
        "teams",
        "evaluations",
        "evaluation_rankings",
        "deleted_teams",
    ):
        assert name in tables

    await close_db(db)


@pytest.mark.asyncio
async def test_init_db_wal_and_foreign_keys(tmp_path):
    db = await init_db(str(tmp_path / "test.db"))

    async with db.execute("PRAGMA journal_mode") as cursor:
        assert (await cursor.fetchone())[0] == "wal"
    async with db.execute("PRAGMA foreign_keys") as cursor:
        assert (await cursor.fetchone())[0] == 1

    await close_db(db)


@pytest.mark.asyncio
async def test_init_db_creates_parent_dirs(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "test.db"
    db = await init_db(str(db_path))
    assert db_path.parent.exists()
    await close_db(db)


@pytest.mark.asyncio
async def test_init_db_idempotent(tmp_path):
    db_path = str(tmp_path / "test.db")
    db1 = await init_db(db_path)
    await CatalogStore(db1).save_problem_statement(_make_ps())
    await close_db(db1)

    db2 = await init_db(db_path)
    assert await CatalogStore(db2).get_problem_statement("ps-1") is not None
    await close_db(db2)


@pytest.mark.asyncio
async def test_init_db_memory():
    db = await init_db(":memory:")
    await CatalogStore(db).save_problem_statement(_make_ps())
    assert len(await CatalogStore(db).list_problem_statements()) == 1
    await close_db(db)


# ── CatalogStore ──────────────────────────────────────────────────


class TestProblemStatements:
    @pytest.mark.asyncio
    async def test_save_and_get(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)

        await catalog.save_problem_statement(_make_ps())
        ps = await catalog.get_problem_statement("ps-1")

        assert ps == _make_ps()
        assert await catalog.get_problem_statement("missing") is None

        await close_db(db)

    @pytest.mark.asyncio
    async def test_upsert_updates_fields(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)

        await catalog.save_problem_statement(_make_ps())
        await catalog.save_problem_statement(_make_ps(title="Smarter Campus"))

        assert (await catalog.get_problem_statement("ps-1")).title == "Smarter Campus"

        await close_db(db)

    @pytest.mark.asyncio
    async def test_list_active_only(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)

        await catalog.save_problem_statement(_make_ps("ps-2", "PS-02"))
        await catalog.save_problem_statement(_make_ps("ps-1", "PS-01"))
        await catalog.save_problem_statement(_make_ps("ps-3", "PS-03", is_active=False))

        active = await catalog.list_problem_statements()
        assert [p.problem_statement_id for p in active] == ["ps-1", "ps-2"]
        assert len(await catalog.list_problem_statements(active_only=False)) == 3

        await close_db(db)


class TestEvaluators:
    @pytest.mark.asyncio
    async def test_save_lowercases_email_and_stores_assignments(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)
        await catalog.save_problem_statement(_make_ps())
        await catalog.save_problem_statement(_make_ps("ps-2", "PS-02"))

        await catalog.save_evaluator(Evaluator(
            evaluator_id="e1", email="Judge@Example.COM",
            assigned_problem_statements=["ps-2", "ps-1"],
        ))
        evaluator = await catalog.get_evaluator("e1")

        assert evaluator.email == "judge@example.com"
        assert evaluator.assigned_problem_statements == ["ps-1", "ps-2"]

        await close_db(db)

    @pytest.mark.asyncio
    async def test_set_assignments_replaces(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)
        await catalog.save_problem_statement(_make_ps())
        await catalog.save_problem_statement(_make_ps("ps-2", "PS-02"))
        await catalog.save_evaluator(Evaluator(
            evaluator_id="e1", email="e1@example.com", assigned_problem_statements=["ps-1"],
        ))

        await catalog.set_assignments("e1", ["ps-2"])

        assert (await catalog.get_evaluator("e1")).assigned_problem_statements == ["ps-2"]

        await close_db(db)

    @pytest.mark.asyncio
    async def test_list_filters_role_and_activity(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)
        await catalog.save_problem_statement(_make_ps())
        await catalog.save_evaluator(Evaluator(
            evaluator_id="e1", email="b@example.com", assigned_problem_statements=["ps-1"],
        ))
        await catalog.save_evaluator(Evaluator(
            evaluator_id="e2", email="a@example.com", assigned_problem_statements=["ps-1"],
        ))
        await catalog.save_evaluator(Evaluator(
            evaluator_id="e3", email="c@example.com", is_active=False,
            assigned_problem_statements=["ps-1"],
        ))
        await catalog.save_evaluator(Evaluator(
            evaluator_id="root", email="root@example.com", role=AdminRole.SUPER_ADMIN,
        ))

        evaluators = await catalog.list_evaluators()
        assert [e.evaluator_id for e in evaluators] == ["e2", "e1"]
        everyone = await catalog.list_evaluators(role=None, active_only=False)
        assert len(everyone) == 4
        assigned = await catalog.list_evaluators_for_problem_statement("ps-1")
        assert [e.evaluator_id for e in assigned] == ["e2", "e1"]

        await close_db(db)


class TestTeams:
    @pytest.mark.asyncio
    async def test_add_team_round_trip_and_counter(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)
        await catalog.save_problem_statement(_make_ps())

        await catalog.add_team(_make_team("A"))
        await catalog.add_team(_make_team("B"))

        team = await catalog.get_team("A")
        assert team == _make_team("A")
        assert (await catalog.get_problem_statement("ps-1")).team_count == 2

        await close_db(db)

    @pytest.mark.asyncio
    async def test_list_filters(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)
        await catalog.save_problem_statement(_make_ps())
        await catalog.save_problem_statement(_make_ps("ps-2", "PS-02"))
        await catalog.add_team(_make_team("B"))
        await catalog.add_team(_make_team("A", status=TeamStatus.SELECTED))
        await catalog.add_team(_make_team("R", status=TeamStatus.REJECTED))
        await catalog.add_team(_make_team("X", ps_id="ps-2"))

        assert len(await catalog.list_teams()) == 4
        by_ps = await catalog.list_teams("ps-1")
        assert [t.team_id for t in by_ps] == ["A", "B", "R"]
        selected = await catalog.list_teams(status=TeamStatus.SELECTED)
        assert [t.team_id for t in selected] == ["A"]
        evaluable = await catalog.list_evaluable_teams("ps-1")
        assert [t.team_id for t in evaluable] == ["A", "B"]

        await close_db(db)

    @pytest.mark.asyncio
    async def test_update_status(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)
        await catalog.save_problem_statement(_make_ps())
        await catalog.add_team(_make_team("A"))

        team = await catalog.update_team_status("A", TeamStatus.WAITLISTED)
        assert team.status == TeamStatus.WAITLISTED
        assert await catalog.update_team_status("missing", TeamStatus.SELECTED) is None

        await close_db(db)

    @pytest.mark.asyncio
    async def test_remove_team_writes_backup(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)
        await catalog.save_problem_statement(_make_ps())
        team = _make_team("A")
        await catalog.add_team(team)

        backup = DeletedTeam(
            original_team_id="A", team_name=team.team_name, leader=team.leader,
            members=team.members, problem_statement_id="ps-1",
            status=team.status, registration_date=team.registration_date,
            deleted_by="admin@example.com", reason="Duplicate",
        )
        await catalog.remove_team(team, backup)

        assert await catalog.get_team("A") is None
        assert (await catalog.get_problem_statement("ps-1")).team_count == 0
        deleted = await catalog.list_deleted_teams()
        assert deleted == [backup]

        await close_db(db)

    @pytest.mark.asyncio
    async def test_remove_team_rolls_back_on_hook_failure(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db)
        await catalog.save_problem_statement(_make_ps())
        team = _make_team("A")
        await catalog.add_team(team)
        backup = DeletedTeam(
            original_team_id="A", team_name=team.team_name, leader=team.leader,
            problem_statement_id="ps-1", status=team.status,
            registration_date=team.registration_date, deleted_by="admin@example.com",
        )

        async def _fail() -> None:
            raise RuntimeError("identity provider down")

        with pytest.raises(RuntimeError):
            await catalog.remove_team(team, backup, before_delete=_fail)

        assert await catalog.get_team("A") is not None
        assert await catalog.list_deleted_teams() == []
        assert (await catalog.get_problem_statement("ps-1")).team_count == 1

        await close_db(db)


# ── EvaluationStore ───────────────────────────────────────────────


class TestEvaluationStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        store = EvaluationStore(db)

        evaluation = _make_evaluation(finalized=True)
        await store.upsert_evaluation(evaluation)

        assert await store.get_evaluation("ps-1", "e1") == evaluation
        assert await store.get_evaluation("ps-1", "e2") is None

        await close_db(db)

    @pytest.mark.asyncio
    async def test_upsert_replaces_rankings_keeps_created_at(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        store = EvaluationStore(db)

        await store.upsert_evaluation(_make_evaluation(ranks=[("A", 1), ("B", 2)]))
        replacement = _make_evaluation(ranks=[("C", 1)]).model_copy(update={
            "created_at": datetime(2030, 1, 1, tzinfo=UTC),
        })
        await store.upsert_evaluation(replacement)

        stored = await store.get_evaluation("ps-1", "e1")
        assert [r.team_id for r in stored.rankings] == ["C"]
        assert stored.created_at == datetime(2026, 2, 16, 10, 0, tzinfo=UTC)

        async with db.execute("SELECT COUNT(*) FROM evaluation_rankings") as cursor:
            assert (await cursor.fetchone())[0] == 1

        await close_db(db)

    @pytest.mark.asyncio
    async def test_failed_ranking_insert_keeps_previous_evaluation(self, tmp_path, monkeypatch):
        db = await init_db(str(tmp_path / "test.db"))
        store = EvaluationStore(db)
        original = _make_evaluation(ranks=[("A", 1), ("B", 2)])
        await store.upsert_evaluation(original)

        monkeypatch.setattr(
            db, "executemany",
            AsyncMock(side_effect=sqlite3.IntegrityError("UNIQUE constraint failed")),
        )
        replacement = _make_evaluation(finalized=True, ranks=[("C", 1)])
        with pytest.raises(sqlite3.IntegrityError):
            await store.upsert_evaluation(replacement)
        monkeypatch.undo()

        assert await store.get_evaluation("ps-1", "e1") == original
        async with db.execute("SELECT COUNT(*) FROM evaluation_rankings") as cursor:
            assert (await cursor.fetchone())[0] == 2

        await close_db(db)

    @pytest.mark.asyncio
    async def test_deferred_commit_rolls_back_with_caller(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        catalog = CatalogStore(db, autocommit=False)
        store = EvaluationStore(db, autocommit=False)

        await catalog.save_problem_statement(_make_ps())
        await catalog.add_team(_make_team("A"))
        await store.upsert_evaluation(_make_evaluation())
        await db.rollback()

        assert await catalog.list_problem_statements() == []
        assert await catalog.list_teams() == []
        assert await store.get_evaluation("ps-1", "e1") is None

        await close_db(db)

    @pytest.mark.asyncio
    async def test_list_by_statement_and_evaluator(self, tmp_path):
        db = await init_db(str(tmp_path / "test.db"))
        store = EvaluationStore(db)

        await store.upsert_evaluation(_make_evaluation("e1"))
        await store.upsert_evaluation(_make_evaluation("e2", finalized=True))

        by_ps = await store.list_evaluations_for_problem_statement("ps-1")
        assert {e.evaluator_id for e in by_ps} == {"e1", "e2"}
        by_evaluator = await store.list_evaluations_for_evaluator("e2")
        assert len(by_evaluator) == 1
        assert by_evaluator[0].is_finalized is True

        await close_db(db)


# ── Export Tests ──────────────────────────────────────────────────


class TestExport:
    def test_export_json_is_valid(self):
        data = json.loads(export_json(_make_report()))
        assert data["problem_statement_id"] == "ps-1"
        assert len(data["consensus_analysis"]) == 3
        assert data["statistics"]["completed_evaluations"] == 2

    def test_export_markdown_sections(self):
        md = export_markdown(_make_report())
        assert md.startswith("# Consensus Report: Smart Campus")
        assert "## Statistics" in md
        assert "| # | Team | Avg Rank |" in md
        assert "## Evaluator Rankings" in md
        assert "### Team C" in md
        assert "_Not ranked by any evaluator._" in md

    def test_export_markdown_values(self):
        md = export_markdown(_make_report())
        assert "| Team A | 1.50 | 90.0 | 0.50 | low | 2 |" in md
        assert "- **one@example.com:** rank 1, score 90" in md
        assert "  > Great UX" in md
        assert "| Team C | - | - | - | low | 0 |" in md
