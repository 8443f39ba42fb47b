"""hackrank CLI — Typer + Rich terminal interface.

Commands: serve, db, consensus, overview, evaluators, select, status,
withdraw, config.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from hackrank import __version__
from hackrank.errors import HackrankError, RankingValidationError
from hackrank.schemas.catalog import Evaluator, ProblemStatement, Team
from hackrank.schemas.config import AppConfig
from hackrank.schemas.consensus import ConflictLevel, ConsensusReport
from hackrank.schemas.evaluation import Evaluation
from hackrank.settings import DEFAULT_CONFIG_PATH, load_config, resolve_config_path

console = Console()

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="hackrank",
    help="Evaluator rankings and consensus for hackathon judging.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

db_app = typer.Typer(
    name="db",
    help="Create and populate the database.",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

config_app = typer.Typer(
    name="config",
    help="Show application configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

# Set by the app callback on every invocation
_db_override: str | None = None


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"hackrank {__version__}")
        raise typer.Exit()


# ── App Callback ────────────────────────────────────────────────


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log state changes to the terminal.",
    ),
    db: str = typer.Option(
        None, "--db",
        help="Database path (overrides config and HACKRANK_DB_PATH).",
    ),
) -> None:
    """hackrank — evaluator rankings and consensus for hackathon judging."""
    global _db_override
    _db_override = db
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True,
        )


# ── Helpers ──────────────────────────────────────────────────────


def _load_config() -> AppConfig:
    """Load app config, exit on error."""
    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None
    if _db_override:
        config.database.path = _db_override
    return config


def _run(coro):
    """Run a coroutine, printing app errors in red and exiting 1."""
    try:
        return asyncio.run(coro)
    except HackrankError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        for detail in e.details or []:
            console.print(f"  [dim]- {detail}[/dim]")
        raise typer.Exit(1) from None


def _conflict_style(level: ConflictLevel) -> str:
    if level == ConflictLevel.HIGH:
        return "bold red"
    if level == ConflictLevel.MEDIUM:
        return "yellow"
    return "green"


def _fmt(value: float | None, digits: int = 2) -> str:
    return "-" if value is None else f"{value:.{digits}f}"


# ── hackrank serve ──────────────────────────────────────────────


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default from config)"),
) -> None:
    """Start the HTTP API server."""
    import uvicorn

    from hackrank.api.server import create_app

    config = _load_config()
    bind_host = host or config.api.host
    bind_port = port or config.api.port

    console.print(
        f"[bold]hackrank API[/bold] at [cyan]http://{bind_host}:{bind_port}[/cyan]"
        f"  [dim](db: {config.database.path})[/dim]"
    )
    uvicorn.run(create_app(config), host=bind_host, port=bind_port, log_level="info")


# ── hackrank db ─────────────────────────────────────────────────


@db_app.command("init")
def db_init() -> None:
    """Create the database schema."""
    from hackrank.persistence.database import close_db, init_db

    config = _load_config()

    async def _init():
        db = await init_db(config.database.path)
        await close_db(db)

    _run(_init())
    console.print(f"[green]Database ready:[/green] {config.database.path}")


@db_app.command("seed")
def db_seed(
    file: Path = typer.Argument(..., help="JSON file with problem_statements, evaluators, teams"),
) -> None:
    """Load problem statements, evaluators, teams and evaluations from JSON."""
    from hackrank.persistence.catalog import CatalogStore
    from hackrank.persistence.database import close_db, init_db
    from hackrank.persistence.evaluations import EvaluationStore

    if not file.exists():
        console.print(f"[red]File not found:[/red] {file}")
        raise typer.Exit(1) from None

    try:
        raw = json.loads(file.read_text(encoding="utf-8"))
        statements = [ProblemStatement(**p) for p in raw.get("problem_statements", [])]
        evaluators = [Evaluator(**e) for e in raw.get("evaluators", [])]
        teams = [Team(**t) for t in raw.get("teams", [])]
        evaluations = [Evaluation(**e) for e in raw.get("evaluations", [])]
    except ValueError as e:
        console.print(f"[red]Invalid seed file:[/red] {e}")
        raise typer.Exit(1) from None

    config = _load_config()

    async def _seed():
        db = await init_db(config.database.path)
        try:
            catalog = CatalogStore(db, autocommit=False)
            for ps in statements:
                await catalog.save_problem_statement(ps)
            for evaluator in evaluators:
                await catalog.save_evaluator(evaluator)
            for team in teams:
                await catalog.add_team(team)
            store = EvaluationStore(db, autocommit=False)
            for evaluation in evaluations:
                await _check_seeded_evaluation(catalog, evaluation)
                await store.upsert_evaluation(evaluation)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        finally:
            await close_db(db)

    try:
        _run(_seed())
    except sqlite3.IntegrityError as e:
        console.print(f"[red]Seed rejected:[/red] {e}")
        console.print("[dim]Nothing was written.[/dim]")
        raise typer.Exit(1) from None
    console.print(
        f"[green]Seeded:[/green] {len(statements)} problem statements, "
        f"{len(evaluators)} evaluators, {len(teams)} teams, "
        f"{len(evaluations)} evaluations"
    )


async def _check_seeded_evaluation(catalog, evaluation: Evaluation) -> None:
    """Apply the save-time team checks to an evaluation loaded from a seed file."""
    from hackrank.ranking.validation import teams_missing_comments, unknown_team_ids

    label = f"evaluation {evaluation.problem_statement_id}/{evaluation.evaluator_id}"
    teams = await catalog.list_evaluable_teams(evaluation.problem_statement_id)
    invalid = unknown_team_ids(evaluation.rankings, teams)
    if invalid:
        raise RankingValidationError(f"{label}: invalid teams in ranking", details=invalid)
    if evaluation.is_finalized:
        missing = teams_missing_comments(evaluation.rankings, teams)
        if missing:
            raise RankingValidationError(
                f"{label}: comments are required for every team before finalizing",
                details=missing,
            )


# ── hackrank consensus / overview / evaluators ──────────────────


def _engine_call(config: AppConfig, method: str, *args):
    """Open the database, call a ConsensusEngine method, close the database."""
    from hackrank.consensus.engine import ConsensusEngine
    from hackrank.persistence.catalog import CatalogStore
    from hackrank.persistence.database import close_db, init_db
    from hackrank.persistence.evaluations import EvaluationStore

    async def _call():
        db = await init_db(config.database.path)
        try:
            engine = ConsensusEngine(CatalogStore(db), EvaluationStore(db), config.consensus)
            return await getattr(engine, method)(*args)
        finally:
            await close_db(db)

    return _run(_call())


def _display_report(report: ConsensusReport) -> None:
    stats = report.statistics
    console.print(f"[bold]{report.title}[/bold]  [dim]{report.problem_statement_id}[/dim]")
    console.print(
        f"[dim]{stats.total_teams} teams · {stats.completed_evaluations}/"
        f"{stats.total_evaluators} evaluations finalized · "
        f"{stats.conflicting_teams} conflicting[/dim]"
    )

    table = Table(title="Consensus", show_lines=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Team", style="bold cyan")
    table.add_column("Status", style="dim")
    table.add_column("Avg Rank", justify="right")
    table.add_column("Avg Score", justify="right")
    table.add_column("Std Dev", justify="right")
    table.add_column("Conflict")
    table.add_column("Ranks")

    for position, row in enumerate(report.consensus_analysis, start=1):
        c = row.consensus
        ranks = ", ".join(
            f"{r.evaluator_email.split('@')[0]}:{r.rank}" for r in row.rankings
        )
        table.add_row(
            str(position),
            row.team_name,
            row.status,
            _fmt(c.average_rank),
            _fmt(c.average_score, 1),
            _fmt(c.rank_standard_deviation),
            Text(c.conflict_level.value.upper(), style=_conflict_style(c.conflict_level)),
            ranks or "-",
        )
    console.print(table)

    pending = [e.evaluator_email for e in report.evaluator_rankings if not e.is_finalized]
    if pending:
        console.print(f"[yellow]Pending:[/yellow] {', '.join(pending)}")


@app.command()
def consensus(
    problem_statement_id: str = typer.Argument(..., help="Problem statement ID"),
    fmt: str = typer.Option(
        "table", "--format", "-f",
        help="Output format: table, json or markdown",
    ),
) -> None:
    """Show the consensus ranking for one problem statement."""
    from hackrank.persistence.export import export_json, export_markdown

    if fmt not in ("table", "json", "markdown"):
        console.print(f"[red]Invalid format:[/red] '{fmt}'. Choose table, json or markdown.")
        raise typer.Exit(1) from None

    config = _load_config()
    report = _engine_call(config, "problem_statement_report", problem_statement_id)

    if fmt == "json":
        console.print_json(export_json(report))
    elif fmt == "markdown":
        console.print(export_markdown(report), markup=False, highlight=False)
    else:
        _display_report(report)


@app.command()
def overview() -> None:
    """Evaluation progress and conflicts across problem statements."""
    config = _load_config()
    rows = _engine_call(config, "overview")

    if not rows:
        console.print("[dim]No problem statements with teams and evaluators.[/dim]")
        return

    table = Table(title="Problem Statements")
    table.add_column("PS", style="cyan", no_wrap=True)
    table.add_column("Title", max_width=40)
    table.add_column("Teams", justify="right")
    table.add_column("Evaluations", justify="right")
    table.add_column("Conflicts", justify="right")

    for row in rows:
        conflicts = Text(
            str(row.conflicting_teams),
            style="red" if row.conflicting_teams else "green",
        )
        table.add_row(
            row.ps_number,
            row.title,
            str(row.total_teams),
            f"{row.completed_evaluations}/{row.assigned_evaluators}",
            conflicts,
        )
    console.print(table)


@app.command()
def evaluators(
    evaluator_id: str = typer.Argument(None, help="Show one evaluator's assignments"),
) -> None:
    """Show evaluator progress."""
    config = _load_config()

    if evaluator_id:
        detail = _engine_call(config, "evaluator_detail", evaluator_id)
        console.print(
            f"[bold]{detail.email}[/bold]  "
            f"[dim]{detail.completed_evaluations}/{detail.total_assignments} "
            f"finalized ({detail.progress_percentage}%)[/dim]"
        )
        table = Table(title="Assignments")
        table.add_column("Problem Statement", style="cyan")
        table.add_column("Teams", justify="right")
        table.add_column("Ranked", justify="right")
        table.add_column("State")
        for ps in detail.problem_statements:
            if ps.is_finalized:
                state = Text("FINALIZED", style="green")
            elif ps.is_evaluated:
                state = Text("DRAFT", style="yellow")
            else:
                state = Text("PENDING", style="dim")
            table.add_row(ps.title, str(ps.total_teams), str(ps.ranked_teams), state)
        console.print(table)
        return

    progress = _engine_call(config, "evaluator_progress")
    if not progress:
        console.print("[dim]No active evaluators.[/dim]")
        return

    table = Table(title="Evaluators")
    table.add_column("Email", style="cyan")
    table.add_column("Assigned", justify="right")
    table.add_column("Finalized", justify="right")
    table.add_column("Drafts", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Teams Ranked", justify="right")
    for p in progress:
        table.add_row(
            p.email,
            str(p.total_assignments),
            str(p.completed_evaluations),
            str(p.draft_evaluations),
            f"{p.progress_percentage}%",
            str(p.total_teams_evaluated),
        )
    console.print(table)


# ── hackrank select / status / withdraw ─────────────────────────


def _team_call(config: AppConfig, method: str, *args, **kwargs):
    """Open the database, call a TeamService method, close the database."""
    from hackrank.persistence.catalog import CatalogStore
    from hackrank.persistence.database import close_db, init_db
    from hackrank.teams.service import TeamService

    async def _call():
        db = await init_db(config.database.path)
        try:
            return await getattr(TeamService(CatalogStore(db)), method)(*args, **kwargs)
        finally:
            await close_db(db)

    return _run(_call())


@app.command()
def select(
    team_id: str = typer.Argument(..., help="Team ID"),
) -> None:
    """Mark a team as selected."""
    config = _load_config()
    result = _team_call(config, "select_team", team_id)

    if not result.allowed:
        console.print(f"[yellow]{result.team_name}:[/yellow] {result.message}")
        raise typer.Exit(1) from None
    console.print(
        f"[green]Selected:[/green] {result.team_name} "
        f"[dim](was {result.previous_status.value})[/dim]"
    )


@app.command()
def status(
    team_id: str = typer.Argument(..., help="Team ID"),
    new_status: str = typer.Argument(
        ..., metavar="STATUS",
        help="registered, selected, waitlisted, rejected or finalist",
    ),
) -> None:
    """Set a team's status."""
    config = _load_config()
    team = _team_call(config, "update_status", team_id, new_status)
    console.print(f"[green]{team.team_name}[/green] is now [bold]{team.status.value}[/bold]")


@app.command()
def withdraw(
    team_id: str = typer.Argument(..., help="Team ID"),
    deleted_by: str = typer.Option(
        "cli", "--by",
        help="Who is removing the team (recorded in the backup)",
    ),
    reason: str = typer.Option("Team withdrawal", "--reason", help="Recorded reason"),
    yes: bool = typer.Option(
        False, "--yes", "-y",
        help="Skip confirmation prompt",
    ),
) -> None:
    """Back up and delete a team."""
    if not yes:
        confirm = typer.confirm(
            f"Withdraw team {team_id}? This cannot be undone."
        )
        if not confirm:
            console.print("[dim]Cancelled.[/dim]")
            return

    config = _load_config()
    backup = _team_call(
        config, "withdraw_team", team_id, deleted_by=deleted_by, reason=reason,
    )
    console.print(f"[green]Team withdrawn:[/green] {backup.team_name}")


# ── hackrank config ─────────────────────────────────────────────


@config_app.command("show")
def config_show() -> None:
    """Show current configuration."""
    config = _load_config()
    thresholds = config.consensus.thresholds

    table = Table(title="Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Database Path", config.database.path)
    table.add_row("Low Conflict Max", f"{thresholds.low_max:.2f}")
    table.add_row("Medium Conflict Max", f"{thresholds.medium_max:.2f}")
    table.add_row("Include Drafts", str(config.consensus.include_drafts))
    table.add_row("API Host", config.api.host)
    table.add_row("API Port", str(config.api.port))
    table.add_row("CORS Origins", ", ".join(config.api.cors_origins) or "-")

    console.print(table)


@config_app.command("path")
def config_path() -> None:
    """Show configuration file locations."""
    files = [
        ("Active", resolve_config_path()),
        ("Defaults", DEFAULT_CONFIG_PATH),
    ]

    table = Table(title="Configuration Paths", show_header=False)
    table.add_column("Config", style="bold")
    table.add_column("Path")
    table.add_column("Status")

    for name, path in files:
        exists = path.exists()
        status_text = "[green]found[/green]" if exists else "[red]missing[/red]"
        table.add_row(name, str(path), status_text)

    console.print(table)


if __name__ == "__main__":
    app()
