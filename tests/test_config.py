"""Tests for configuration loading."""

import pytest
from pathlib import Path

from ctxcache.config import load_config


class TestConfig:
    def test_defaults(self, tmp_path: Path):
        config = load_config(env={"HOME": str(tmp_path / "home")}, cwd=tmp_path)
        assert config.cache_dir is None
        assert config.log_level == "INFO"
        assert config.project == {}

    def test_env_override(self, tmp_path: Path):
        env = {"CTXCACHE_DIR": str(tmp_path / "cache"), "CTXCACHE_LOG_LEVEL": "DEBUG"}
        config = load_config(env=env, cwd=tmp_path)
        assert config.cache_dir == tmp_path / "cache"
        assert config.log_level == "DEBUG"

    def test_toml_file(self, tmp_path: Path):
        toml_path = tmp_path / "custom.toml"
        toml_path.write_text(f"""
cache_dir = "{tmp_path / 'from-toml'}"
log_level = "WARNING"

[project]
name = "demo"
modules = ["core", "cli"]
""")
        config = load_config(toml_path, env={}, cwd=tmp_path)
        assert config.cache_dir == tmp_path / "from-toml"
        assert config.log_level == "WARNING"
        assert config.project["name"] == "demo"
        assert config.project["modules"] == ["core", "cli"]

    def test_env_overrides_toml(self, tmp_path: Path):
        toml_path = tmp_path / "ctxcache.toml"
        toml_path.write_text('log_level = "WARNING"\n')
        config = load_config(toml_path, env={"CTXCACHE_LOG_LEVEL": "ERROR"}, cwd=tmp_path)
        assert config.log_level == "ERROR"  # env wins

    def test_searches_cwd(self, tmp_path: Path):
        (tmp_path / "ctxcache.toml").write_text('log_level = "DEBUG"\n')
        config = load_config(env={}, cwd=tmp_path)
        assert config.log_level == "DEBUG"

    def test_searches_home(self, tmp_path: Path):
        home_cfg = tmp_path / "home" / ".ctxcache" / "ctxcache.toml"
        home_cfg.parent.mkdir(parents=True)
        home_cfg.write_text('log_level = "ERROR"\n')
        config = load_config(env={"HOME": str(tmp_path / "home")}, cwd=tmp_path / "project")
        assert config.log_level == "ERROR"

    def test_reads_process_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("CTXCACHE_LOG_LEVEL", "CRITICAL")
        config = load_config(cwd=tmp_path)
        assert config.log_level == "CRITICAL"
