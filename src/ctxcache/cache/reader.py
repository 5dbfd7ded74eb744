"""Load the best available context document.

Candidates are tried in order: primary, legacy (per fingerprint), backup.
The first one that exists is decoded; if it cannot be decoded under either
schema, the backup gets one more chance before the load fails.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from ctxcache.cache.locator import CacheLocator
from ctxcache.cache.model import ProjectContext, decode_document
from ctxcache.errors import CacheNotFound, CacheParseError, SchemaError

logger = logging.getLogger(__name__)

SourceKind = Literal["primary", "legacy", "backup"]


@dataclass
class LoadResult:
    """A loaded context and where it came from."""

    context: ProjectContext
    source: Path
    source_kind: SourceKind
    migrated: bool = False
    restored: bool = False


def _candidates(locator: CacheLocator) -> Iterator[tuple[SourceKind, Path]]:
    yield "primary", locator.primary
    yield "legacy", locator.legacy
    yield "backup", locator.backup


def select_candidate(locator: CacheLocator) -> tuple[SourceKind, Path] | None:
    """First existing candidate file, by existence only."""
    for kind, path in _candidates(locator):
        if path.is_file():
            return kind, path
    return None


def read_document(path: Path) -> tuple[ProjectContext, bool]:
    """Read and decode one file. Raises SchemaError for unreadable or undecodable content."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SchemaError(f"cannot read {path.name}: {e}") from e
    return decode_document(text)


def load_context(locator: CacheLocator) -> LoadResult:
    """Load the project context for a locator.

    Raises CacheNotFound when no candidate exists, CacheParseError when
    neither the selected file nor the backup decodes.
    """
    selected = select_candidate(locator)
    if selected is None:
        raise CacheNotFound(locator.cache_dir)

    kind, path = selected
    if kind == "legacy":
        logger.info("Migrating legacy format from %s", path)
    elif kind == "backup":
        logger.warning("Primary cache missing, restoring from backup %s", path)
    else:
        logger.debug("Loading context cache %s", path)

    try:
        context, migrated = read_document(path)
        result = LoadResult(
            context=context,
            source=path,
            source_kind=kind,
            migrated=migrated or kind == "legacy",
            restored=kind == "backup",
        )
    except SchemaError as primary_error:
        logger.warning("Cannot decode %s: %s", path, primary_error)
        backup = locator.backup
        if path == backup or not backup.is_file():
            raise CacheParseError(str(primary_error)) from primary_error
        try:
            context, migrated = read_document(backup)
        except SchemaError as backup_error:
            logger.error("Backup %s is unreadable too: %s", backup, backup_error)
            raise CacheParseError(str(primary_error), str(backup_error)) from backup_error
        logger.warning("Recovered context from backup %s", backup)
        result = LoadResult(
            context=context,
            source=backup,
            source_kind="backup",
            migrated=migrated,
            restored=True,
        )

    if result.migrated:
        logger.info("Migrated legacy document to schema %s", result.context.cache_schema_version)
    result.context.session_count = result.context.total_sessions
    return result


def load_previous(locator: CacheLocator) -> ProjectContext | None:
    """Load used before a save. A missing cache means first session.

    CacheParseError propagates so an unreadable cache is never overwritten.
    """
    try:
        return load_context(locator).context
    except CacheNotFound:
        return None
