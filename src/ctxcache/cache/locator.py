"""Cache directory and candidate file resolution.

Layout:
    ~/.ctxcache/
    ├── project.cache                  # Primary document (always schema 2.0)
    ├── project.cache.bkp              # Copy of primary after each save
    └── project_<fingerprint>.cache    # Legacy per-project documents, removed on save

The environment mapping and working directory are passed in, so tests can
point the locator at a temporary home without touching the real one.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ctxcache.errors import HomeDirectoryUnresolved

CACHE_DIR_NAME = ".ctxcache"
PRIMARY_FILENAME = "project.cache"
BACKUP_SUFFIX = ".bkp"
LEGACY_PATTERN = re.compile(r"^project_[0-9A-Za-z]+\.cache$")

_HOME_VARIABLES = ("HOME", "USERPROFILE")

_FNV64_OFFSET = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


def resolve_home_directory(env: Mapping[str, str]) -> Path:
    """Home directory from HOME (POSIX) or USERPROFILE (Windows)."""
    for name in _HOME_VARIABLES:
        value = env.get(name)
        if value:
            return Path(value)
    raise HomeDirectoryUnresolved()


def resolve_cache_directory(env: Mapping[str, str]) -> Path:
    return resolve_home_directory(env) / CACHE_DIR_NAME


def fnv1a_64(data: bytes) -> int:
    value = _FNV64_OFFSET
    for byte in data:
        value ^= byte
        value = (value * _FNV64_PRIME) & _MASK64
    return value


def compute_project_fingerprint(working_directory: Path) -> str:
    """Stable 16-hex-char fingerprint of an absolute path, for legacy lookup only.

    64-bit FNV-1a over the UTF-8 path; a non-cryptographic key, never an
    integrity check.
    """
    path_str = str(Path(working_directory).absolute())
    return f"{fnv1a_64(path_str.encode('utf-8')):016x}"


@dataclass
class CacheLocator:
    """Resolved cache paths for one working directory."""

    cache_dir: Path
    working_directory: Path
    fingerprint: str

    @classmethod
    def resolve(
        cls,
        env: Mapping[str, str],
        working_directory: Path,
        cache_dir: Path | None = None,
    ) -> CacheLocator:
        """Build a locator; an explicit cache_dir skips the home lookup."""
        working_directory = Path(working_directory).absolute()
        return cls(
            cache_dir=cache_dir if cache_dir is not None else resolve_cache_directory(env),
            working_directory=working_directory,
            fingerprint=compute_project_fingerprint(working_directory),
        )

    @property
    def primary(self) -> Path:
        return self.cache_dir / PRIMARY_FILENAME

    @property
    def legacy(self) -> Path:
        return self.cache_dir / f"project_{self.fingerprint}.cache"

    @property
    def backup(self) -> Path:
        return self.cache_dir / f"{PRIMARY_FILENAME}{BACKUP_SUFFIX}"

    def legacy_files(self) -> list[Path]:
        """All legacy-named documents currently in the cache directory."""
        if not self.cache_dir.is_dir():
            return []
        return sorted(
            path
            for path in self.cache_dir.iterdir()
            if path.name != PRIMARY_FILENAME and LEGACY_PATTERN.match(path.name)
        )
