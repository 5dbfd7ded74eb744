"""Configuration loading from environment variables and ctxcache.toml."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from ctxcache.cache.locator import CACHE_DIR_NAME, resolve_home_directory
from ctxcache.errors import HomeDirectoryUnresolved

_CONFIG_FILENAME = "ctxcache.toml"


@dataclass
class CacheConfig:
    """Top-level ctxcache configuration."""

    cache_dir: Path | None = None
    log_level: str = "INFO"
    project: dict = field(default_factory=dict)


def _candidate_files(env: Mapping[str, str], cwd: Path) -> list[Path]:
    candidates = [cwd / _CONFIG_FILENAME]
    try:
        candidates.append(resolve_home_directory(env) / CACHE_DIR_NAME / _CONFIG_FILENAME)
    except HomeDirectoryUnresolved:
        pass
    return candidates


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> CacheConfig:
    """Load configuration from environment variables and optional ctxcache.toml.

    Priority: environment variables > ctxcache.toml > defaults.
    """
    env = os.environ if env is None else env
    cwd = cwd or Path.cwd()

    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.ctxcache/
        for candidate in _candidate_files(env, cwd):
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    cache_dir = env.get("CTXCACHE_DIR") or file_data.get("cache_dir")
    return CacheConfig(
        cache_dir=Path(cache_dir).expanduser() if cache_dir else None,
        log_level=env.get("CTXCACHE_LOG_LEVEL", file_data.get("log_level", "INFO")),
        project=dict(file_data.get("project", {})),
    )
