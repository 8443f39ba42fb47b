"""Application configuration schemas.

Loaded from defaults.toml (see hackrank.settings) and overridden by
environment variables and CLI flags.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from hackrank.schemas.consensus import ConflictThresholds


class DatabaseConfig(BaseModel):
    """Where the SQLite database lives."""

    path: str = Field(
        default="~/.hackrank/hackrank.db",
        description="SQLite database file; ':memory:' for a throwaway database",
    )


class ConsensusConfig(BaseModel):
    """Consensus computation settings."""

    thresholds: ConflictThresholds = Field(default_factory=ConflictThresholds)
    include_drafts: bool = Field(
        default=False,
        description="Count draft evaluations in the consensus (finalized only by default)",
    )


class ApiConfig(BaseModel):
    """HTTP API settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, gt=0, lt=65536)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


class AppConfig(BaseModel):
    """Top-level application configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
