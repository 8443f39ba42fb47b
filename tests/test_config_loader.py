"""Tests for hackrank.settings — TOML config loading and env overrides."""

from pathlib import Path

import pytest

from hackrank.schemas.config import AppConfig
from hackrank.settings import (
    CONFIG_ENV,
    DB_PATH_ENV,
    DEFAULT_CONFIG_PATH,
    load_config,
    resolve_config_path,
)

# Path to the real config file shipped with the package
_CONFIG_DIR = Path(__file__).parent.parent / "hackrank" / "config"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    monkeypatch.delenv(DB_PATH_ENV, raising=False)


class TestLoadConfig:
    def test_loads_real_defaults(self):
        config = load_config(_CONFIG_DIR / "defaults.toml")
        assert isinstance(config, AppConfig)
        assert config.database.path == "~/.hackrank/hackrank.db"
        assert config.consensus.thresholds.low_max == 1.0
        assert config.consensus.thresholds.medium_max == 2.5
        assert config.consensus.include_drafts is False
        assert config.api.port == 8000
        assert config.api.cors_origins == ["http://localhost:3000"]

    def test_default_path_used(self):
        assert resolve_config_path() == DEFAULT_CONFIG_PATH
        assert load_config() == load_config(DEFAULT_CONFIG_PATH)

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('[consensus]\nlow_max = 1.5\nmedium_max = 3.0\n')

        config = load_config(path)

        assert config.consensus.thresholds.low_max == 1.5
        assert config.consensus.thresholds.medium_max == 3.0
        assert config.database.path == "~/.hackrank/hackrank.db"
        assert config.api.host == "127.0.0.1"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(tmp_path / "nope.toml")

    def test_inverted_thresholds(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[consensus]\nlow_max = 3.0\nmedium_max = 1.0\n')
        with pytest.raises(ValueError):
            load_config(path)

    def test_negative_threshold(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[consensus]\nlow_max = -1.0\n')
        with pytest.raises(ValueError):
            load_config(path)


class TestEnvOverrides:
    def test_config_env_selects_file(self, tmp_path, monkeypatch):
        path = tmp_path / "env.toml"
        path.write_text('[api]\nport = 9100\n')
        monkeypatch.setenv(CONFIG_ENV, str(path))

        assert resolve_config_path() == path
        assert load_config().api.port == 9100

    def test_explicit_path_beats_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV, str(tmp_path / "ignored.toml"))
        assert resolve_config_path(DEFAULT_CONFIG_PATH) == DEFAULT_CONFIG_PATH

    def test_db_path_env(self, monkeypatch):
        monkeypatch.setenv(DB_PATH_ENV, "/tmp/override.db")
        assert load_config().database.path == "/tmp/override.db"
