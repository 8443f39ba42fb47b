"""TOML configuration loader.

Loads application settings from defaults.toml (or the file named by
HACKRANK_CONFIG) and applies environment overrides.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from hackrank.schemas.config import (
    ApiConfig,
    AppConfig,
    ConsensusConfig,
    DatabaseConfig,
)
from hackrank.schemas.consensus import ConflictThresholds

logger = logging.getLogger(__name__)

# Default config directory relative to the hackrank package
CONFIG_DIR = Path(__file__).parent / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "defaults.toml"

CONFIG_ENV = "HACKRANK_CONFIG"
DB_PATH_ENV = "HACKRANK_DB_PATH"


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Explicit path first, then $HACKRANK_CONFIG, then the shipped defaults."""
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load application settings from a TOML file.

    Args:
        config_path: Path to a TOML file. Defaults to $HACKRANK_CONFIG or
            hackrank/config/defaults.toml.

    Returns:
        AppConfig with values from the file; $HACKRANK_DB_PATH overrides
        the database path.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If a value is invalid (e.g. low_max > medium_max).
    """
    path = resolve_config_path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    database_section = raw.get("database", {})
    consensus_section = raw.get("consensus", {})
    api_section = raw.get("api", {})

    thresholds = ConflictThresholds(
        low_max=consensus_section.get("low_max", 1.0),
        medium_max=consensus_section.get("medium_max", 2.5),
    )

    config = AppConfig(
        database=DatabaseConfig(**database_section),
        consensus=ConsensusConfig(
            thresholds=thresholds,
            include_drafts=consensus_section.get("include_drafts", False),
        ),
        api=ApiConfig(**api_section),
    )

    db_override = os.environ.get(DB_PATH_ENV)
    if db_override:
        config.database.path = db_override

    logger.debug("Loaded config from %s", path)
    return config
