"""Merge a new session into the context and persist it.

Each save fully replaces the primary document, refreshes the backup copy and
removes legacy per-fingerprint documents. Only the primary write is fatal;
backup and cleanup failures are logged and reported on the SaveResult.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ctxcache.cache.locator import CacheLocator
from ctxcache.cache.model import (
    MAX_SESSION_HISTORY,
    SCHEMA_VERSION,
    ProjectContext,
    ProjectMetadata,
    SessionEntry,
    encode_document,
    format_timestamp,
)
from ctxcache.errors import (
    BackupCopyFailed,
    DirectoryCreateFailed,
    LegacyCleanupFailed,
    WriteFailed,
)

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    """Outcome of a save. The primary write always succeeded if this exists."""

    context: ProjectContext
    primary: Path
    backup_error: BackupCopyFailed | None = None
    removed_legacy: list[Path] = field(default_factory=list)
    cleanup_failures: list[LegacyCleanupFailed] = field(default_factory=list)


def merge_history(
    history: list[SessionEntry],
    entry: SessionEntry,
    limit: int = MAX_SESSION_HISTORY,
) -> list[SessionEntry]:
    """Append, stable-sort by timestamp, keep the `limit` most recent."""
    merged = sorted([*history, entry], key=lambda e: e.datetime)
    if len(merged) > limit:
        merged = merged[-limit:]
    return merged


def build_context(
    locator: CacheLocator,
    metadata: ProjectMetadata,
    task: str,
    summary: str,
    previous: ProjectContext | None,
    now: datetime,
) -> ProjectContext:
    """Assemble the next context from the previous one and a new session."""
    timestamp = format_timestamp(now)
    total_sessions = previous.total_sessions + 1 if previous else 1
    created_at = previous.created_at if previous and previous.created_at else timestamp
    history = list(previous.session_history) if previous else []

    return ProjectContext(
        name=metadata.name,
        version=metadata.version,
        repository=metadata.repository,
        license=metadata.license,
        build_system=metadata.build_system,
        language=metadata.language,
        edition=metadata.edition,
        modules=list(metadata.modules),
        module_count=len(metadata.modules),
        critical_files=list(metadata.critical_files),
        api_spec_files=list(metadata.api_spec_files),
        implementation_plan_files=list(metadata.implementation_plan_files),
        session_count=total_sessions,
        total_sessions=total_sessions,
        created_at=created_at,
        last_session=timestamp,
        project_path=str(locator.working_directory),
        build_status=metadata.build_status,
        cache_schema_version=SCHEMA_VERSION,
        project_hash=locator.fingerprint,
        session_history=merge_history(
            history, SessionEntry(datetime=timestamp, task=task, summary=summary)
        ),
    )


def _ensure_cache_dir(cache_dir: Path) -> None:
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreateFailed(cache_dir, str(e)) from e


def _copy_backup(locator: CacheLocator) -> BackupCopyFailed | None:
    try:
        shutil.copyfile(locator.primary, locator.backup)
    except OSError as e:
        error = BackupCopyFailed(locator.backup, str(e))
        logger.warning("%s", error)
        return error
    return None


def _remove_legacy_files(locator: CacheLocator) -> tuple[list[Path], list[LegacyCleanupFailed]]:
    removed: list[Path] = []
    failures: list[LegacyCleanupFailed] = []
    for path in locator.legacy_files():
        try:
            path.unlink()
        except OSError as e:
            error = LegacyCleanupFailed(path, str(e))
            logger.warning("%s", error)
            failures.append(error)
            continue
        removed.append(path)
        logger.info("Removed legacy cache %s", path.name)
    return removed, failures


def save_context(
    locator: CacheLocator,
    metadata: ProjectMetadata,
    task: str = "",
    summary: str = "",
    previous: ProjectContext | None = None,
    now: datetime | None = None,
) -> SaveResult:
    """Record one session and persist the full context.

    Raises DirectoryCreateFailed or WriteFailed; everything after the
    primary write is best-effort.
    """
    context = build_context(locator, metadata, task, summary, previous, now or datetime.now())

    _ensure_cache_dir(locator.cache_dir)
    try:
        locator.primary.write_text(encode_document(context), encoding="utf-8")
    except OSError as e:
        raise WriteFailed(locator.primary, str(e)) from e
    logger.info(
        "Saved session %d to %s (%d in history)",
        context.total_sessions,
        locator.primary,
        len(context.session_history),
    )

    backup_error = _copy_backup(locator)
    removed, failures = _remove_legacy_files(locator)
    return SaveResult(
        context=context,
        primary=locator.primary,
        backup_error=backup_error,
        removed_legacy=removed,
        cleanup_failures=failures,
    )
