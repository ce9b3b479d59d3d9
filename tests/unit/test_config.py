"""Tests for TrenchConfig and path helpers."""

from pathlib import Path

import pytest

from trench.config import DEFAULT_LOG_RETENTION_DAYS, TrenchConfig
from trench.exceptions import ConfigError
from trench.paths import data_dir, default_db_path, sanitize_branch
from trench.state.store import StateStore


class TestTrenchConfig:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        config = TrenchConfig.from_env({})
        assert config.db_path == str(tmp_path / "trench" / "trench.db")
        assert config.log_retention_days == DEFAULT_LOG_RETENTION_DAYS
        assert config.busy_timeout == 30.0
        assert config.retention_enabled

    def test_reads_environment(self):
        config = TrenchConfig.from_env({
            "TRENCH_DB_PATH": "/tmp/x.db",
            "TRENCH_LOG_RETENTION_DAYS": "0",
            "TRENCH_BUSY_TIMEOUT": "5",
        })
        assert config.db_path == "/tmp/x.db"
        assert config.log_retention_days == 0
        assert not config.retention_enabled
        assert config.busy_timeout == 5.0

    def test_uses_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("TRENCH_DB_PATH", "/tmp/from-env.db")
        assert TrenchConfig.from_env().db_path == "/tmp/from-env.db"

    @pytest.mark.parametrize("env", [
        {"TRENCH_LOG_RETENTION_DAYS": "-1"},
        {"TRENCH_LOG_RETENTION_DAYS": "soon"},
        {"TRENCH_BUSY_TIMEOUT": "0"},
        {"TRENCH_DB_PATH": "   "},
    ])
    def test_invalid_values_raise_config_error(self, env):
        with pytest.raises(ConfigError):
            TrenchConfig.from_env(env)

    def test_store_from_config(self, tmp_path):
        db_path = tmp_path / "sub" / "state.db"
        config = TrenchConfig(db_path=str(db_path), log_retention_days=3)
        store = StateStore.from_config(config)
        assert store.log_retention_days == 3
        assert Path(store.db.db_path) == db_path
        assert db_path.exists()
        store.close()


class TestPaths:
    def test_data_dir_xdg(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert data_dir() == tmp_path / "trench"
        assert default_db_path() == str(tmp_path / "trench" / "trench.db")

    def test_data_dir_fallback(self, monkeypatch):
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        assert data_dir() == Path.home() / ".local" / "share" / "trench"

    @pytest.mark.parametrize("branch,expected", [
        ("feature/auth", "feature-auth"),
        ("fix@home", "fix-home"),
        ("a..b", "a-b"),
        ("a--b", "a-b"),
        ("v2.1.3", "v2.1.3"),
        ("my branch", "my-branch"),
        ("/leading", "leading"),
        ("trailing/", "trailing"),
        ("a/@b", "a-b"),
        ("///", ""),
    ])
    def test_sanitize_branch(self, branch, expected):
        assert sanitize_branch(branch) == expected
