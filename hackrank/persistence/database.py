"""SQLite database layer for hackrank.

Manages the SQLite database connection and schema creation. Uses
aiosqlite for async access with WAL mode for concurrent read performance.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"

# SQL schema for the hackrank database
_SCHEMA = """
CREATE TABLE IF NOT EXISTS problem_statements (
    problem_statement_id TEXT PRIMARY KEY,
    ps_number    TEXT NOT NULL UNIQUE,
    title        TEXT NOT NULL,
    description  TEXT NOT NULL DEFAULT '',
    domain       TEXT NOT NULL DEFAULT '',
    team_count   INTEGER NOT NULL DEFAULT 0,
    max_teams    INTEGER NOT NULL DEFAULT 3,
    is_active    INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS evaluators (
    evaluator_id TEXT PRIMARY KEY,
    email        TEXT NOT NULL UNIQUE,
    role         TEXT NOT NULL DEFAULT 'evaluator',
    is_active    INTEGER NOT NULL DEFAULT 1,
    created_at   TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS evaluator_assignments (
    evaluator_id         TEXT NOT NULL
        REFERENCES evaluators(evaluator_id) ON DELETE CASCADE,
    problem_statement_id TEXT NOT NULL
        REFERENCES problem_statements(problem_statement_id) ON DELETE CASCADE,
    PRIMARY KEY (evaluator_id, problem_statement_id)
);

CREATE TABLE IF NOT EXISTS teams (
    team_id              TEXT PRIMARY KEY,
    team_name            TEXT NOT NULL UNIQUE,
    leader_name          TEXT NOT NULL,
    leader_email         TEXT NOT NULL,
    problem_statement_id TEXT NOT NULL
        REFERENCES problem_statements(problem_statement_id),
    status               TEXT NOT NULL DEFAULT 'registered',
    members_json         TEXT NOT NULL DEFAULT '[]',
    registration_date    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS evaluations (
    problem_statement_id TEXT NOT NULL,
    evaluator_id         TEXT NOT NULL,
    is_finalized         INTEGER NOT NULL DEFAULT 0,
    submitted_at         TEXT,
    total_teams          INTEGER NOT NULL DEFAULT 0,
    created_at           TEXT NOT NULL,
    updated_at           TEXT NOT NULL,
    PRIMARY KEY (problem_statement_id, evaluator_id)
);

CREATE TABLE IF NOT EXISTS evaluation_rankings (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    problem_statement_id TEXT NOT NULL,
    evaluator_id         TEXT NOT NULL,
    team_id              TEXT NOT NULL,
    rank                 INTEGER NOT NULL,
    score                REAL,
    comments             TEXT,
    evaluated_at         TEXT NOT NULL,
    FOREIGN KEY (problem_statement_id, evaluator_id)
        REFERENCES evaluations(problem_statement_id, evaluator_id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS deleted_teams (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    original_team_id TEXT NOT NULL,
    team_name        TEXT NOT NULL,
    payload_json     TEXT NOT NULL,
    deleted_by       TEXT NOT NULL,
    reason           TEXT NOT NULL DEFAULT '',
    deleted_at       TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_teams_ps ON teams(problem_statement_id);
CREATE INDEX IF NOT EXISTS idx_evaluations_evaluator ON evaluations(evaluator_id);
CREATE INDEX IF NOT EXISTS idx_evaluations_finalized ON evaluations(is_finalized);
CREATE INDEX IF NOT EXISTS idx_rankings_evaluation
    ON evaluation_rankings(problem_statement_id, evaluator_id);
CREATE INDEX IF NOT EXISTS idx_rankings_team ON evaluation_rankings(team_id);
"""


async def init_db(db_path: str) -> aiosqlite.Connection:
    """Initialize the database connection and create tables if needed.

    Creates parent directories if they don't exist, enables WAL mode
    and foreign keys, then runs the schema DDL.

    Args:
        db_path: Path to the SQLite database file. Supports ~ expansion
            and ':memory:'.

    Returns:
        An open aiosqlite connection ready for use.
    """
    if db_path == MEMORY_DB:
        target = MEMORY_DB
    else:
        resolved = Path(db_path).expanduser()
        resolved.parent.mkdir(parents=True, exist_ok=True)
        target = str(resolved)

    db = await aiosqlite.connect(target)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")
    await db.executescript(_SCHEMA)
    await db.commit()

    logger.info("Database initialized at %s", target)
    return db


async def close_db(db: aiosqlite.Connection) -> None:
    """Close the database connection."""
    await db.close()
