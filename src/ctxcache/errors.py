"""Error types raised by the context cache."""

from __future__ import annotations

from pathlib import Path


class ContextCacheError(Exception):
    """Base class for all context cache errors."""


class HomeDirectoryUnresolved(ContextCacheError):
    """Neither HOME nor USERPROFILE names a home directory."""

    def __init__(self) -> None:
        super().__init__("Cannot determine home directory (HOME / USERPROFILE unset)")


class DirectoryCreateFailed(ContextCacheError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot create cache directory {path}: {reason}")


class CacheNotFound(ContextCacheError):
    """No primary, legacy or backup document exists. Expected on first run."""

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir
        super().__init__(f"No context cache found in {cache_dir}")


class SchemaError(ContextCacheError):
    """A document does not match one schema variant."""


class CacheParseError(ContextCacheError):
    """The selected document (and the backup, if tried) could not be decoded."""

    def __init__(self, primary_error: str, backup_error: str | None = None) -> None:
        self.primary_error = primary_error
        self.backup_error = backup_error
        message = f"Failed to parse context cache: {primary_error}"
        if backup_error is not None:
            message += f"; backup also failed: {backup_error}"
        super().__init__(message)


class WriteFailed(ContextCacheError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write {path}: {reason}")


class BackupCopyFailed(ContextCacheError):
    """Non-fatal: the backup copy could not be refreshed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to copy backup to {path}: {reason}")


class LegacyCleanupFailed(ContextCacheError):
    """Non-fatal: one legacy file could not be removed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to remove legacy cache {path}: {reason}")
