"""Tests for the load / save / paths commands."""

from __future__ import annotations

import pytest
from pathlib import Path

from ctxcache.__main__ import run
from ctxcache.cache.locator import CacheLocator


@pytest.fixture
def env(tmp_path: Path) -> dict[str, str]:
    return {"HOME": str(tmp_path / "home")}


@pytest.fixture
def project(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


class TestSaveAndLoad:
    def test_load_before_save(self, env, project, capsys):
        assert run(["load"], env=env, cwd=project) == 1
        assert "ctxcache save" in capsys.readouterr().out

    def test_save_then_load(self, env, project, capsys):
        assert run(["save", "--task", "wire codec", "--summary", "tests green"], env=env, cwd=project) == 0
        assert "Saved session 1" in capsys.readouterr().out

        assert run(["load"], env=env, cwd=project) == 0
        out = capsys.readouterr().out
        assert "Sessions: 1" in out
        assert "wire codec - tests green" in out

    def test_flags_default_to_empty(self, env, project, capsys):
        assert run(["save"], env=env, cwd=project) == 0
        assert run(["save"], env=env, cwd=project) == 0
        capsys.readouterr()
        assert run(["load"], env=env, cwd=project) == 0
        out = capsys.readouterr().out
        assert "Sessions: 2" in out
        assert "(no task)" in out

    def test_metadata_from_config(self, env, project, capsys):
        (project / "ctxcache.toml").write_text(
            '[project]\nname = "demo"\nversion = "1.2.0"\nmodules = ["a", "b"]\n'
        )
        assert run(["save", "--task", "t"], env=env, cwd=project) == 0
        (project / "ctxcache.toml").unlink()
        assert run(["save", "--task", "u"], env=env, cwd=project) == 0
        capsys.readouterr()
        assert run(["load"], env=env, cwd=project) == 0
        assert "Project: demo 1.2.0" in capsys.readouterr().out

    def test_restored_from_backup(self, env, project, capsys):
        run(["save", "--task", "t"], env=env, cwd=project)
        locator = CacheLocator.resolve(env, project)
        locator.primary.write_text("garbage", encoding="utf-8")
        capsys.readouterr()
        assert run(["load"], env=env, cwd=project) == 0
        assert "restored from backup" in capsys.readouterr().out

    def test_unrecoverable(self, env, project, capsys):
        locator = CacheLocator.resolve(env, project)
        locator.cache_dir.mkdir(parents=True)
        locator.primary.write_text("garbage", encoding="utf-8")
        assert run(["load"], env=env, cwd=project) == 1
        assert "Failed to parse" in capsys.readouterr().err

    def test_save_refuses_unreadable_cache(self, env, project, capsys):
        locator = CacheLocator.resolve(env, project)
        locator.cache_dir.mkdir(parents=True)
        locator.primary.write_text("garbage", encoding="utf-8")
        assert run(["save", "--task", "t"], env=env, cwd=project) == 1
        assert "Failed to parse" in capsys.readouterr().err
        assert locator.primary.read_text(encoding="utf-8") == "garbage"
        assert not locator.backup.exists()

    def test_save_refuses_when_backup_unreadable_too(self, env, project, capsys):
        for _ in range(3):
            assert run(["save"], env=env, cwd=project) == 0
        locator = CacheLocator.resolve(env, project)
        locator.primary.write_text("garbage", encoding="utf-8")
        locator.backup.write_text("garbage", encoding="utf-8")
        capsys.readouterr()

        assert run(["save", "--task", "x"], env=env, cwd=project) == 1
        err = capsys.readouterr().err
        assert "backup also failed" in err
        assert locator.primary.read_text(encoding="utf-8") == "garbage"
        assert locator.backup.read_text(encoding="utf-8") == "garbage"

    def test_save_after_backup_recovery_keeps_count(self, env, project, capsys):
        for _ in range(3):
            run(["save"], env=env, cwd=project)
        locator = CacheLocator.resolve(env, project)
        locator.primary.write_text("garbage", encoding="utf-8")
        capsys.readouterr()
        assert run(["save"], env=env, cwd=project) == 0
        assert "Saved session 4" in capsys.readouterr().out

    def test_load_legacy_notice(self, env, project, capsys):
        locator = CacheLocator.resolve(env, project)
        locator.cache_dir.mkdir(parents=True)
        locator.legacy.write_text(
            "---\nname: old\ntask: A\nsummary: B\nlast_session: '2025-06-30 18:00:00'\n---\n",
            encoding="utf-8",
        )
        assert run(["load"], env=env, cwd=project) == 0
        out = capsys.readouterr().out
        assert f"migrated legacy cache {locator.legacy.name}" in out
        assert "A - B" in out


class TestFatalErrors:
    def test_no_home(self, project, capsys):
        assert run(["load"], env={}, cwd=project) == 1
        assert "home directory" in capsys.readouterr().err

    def test_cache_dir_override(self, tmp_path: Path, project, capsys):
        env = {"CTXCACHE_DIR": str(tmp_path / "custom")}
        assert run(["save"], env=env, cwd=project) == 0
        assert (tmp_path / "custom" / "project.cache").exists()


class TestPaths:
    def test_paths(self, env, project, capsys):
        assert run(["paths"], env=env, cwd=project) == 0
        out = capsys.readouterr().out
        assert "project.cache" in out
        assert "project.cache.bkp" in out
        assert "missing" in out
