"""Entry point: python -m ctxcache <command>

- "load":  Print the stored context for the current directory
- "save":  Record a session (--task, --summary) and persist the context
- "paths": Show the cache directory and candidate files
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from ctxcache.cache.locator import CacheLocator
from ctxcache.cache.model import ProjectContext, ProjectMetadata
from ctxcache.cache.reader import load_context, load_previous
from ctxcache.cache.writer import save_context
from ctxcache.config import CacheConfig, load_config
from ctxcache.errors import CacheNotFound, CacheParseError, ContextCacheError

logger = logging.getLogger("ctxcache")

_RECENT_SESSIONS = 5


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctxcache",
        description="Persistent project session context",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("load", help="Show the stored context for this directory")
    save = sub.add_parser("save", help="Record a session and persist the context")
    save.add_argument("--task", default="", help="What this session worked on")
    save.add_argument("--summary", default="", help="How the session ended")
    sub.add_parser("paths", help="Show cache directory and candidate files")
    return parser


def _print_context(context: ProjectContext) -> None:
    title = f"{context.name} {context.version}".strip() or "(unnamed project)"
    print(f"Project: {title}")
    if context.project_path:
        print(f"Path:    {context.project_path}")
    print(
        f"Sessions: {context.session_count} "
        f"(created {context.created_at or '?'}, last {context.last_session or '?'})"
    )
    if context.build_status:
        print(f"Build:   {context.build_status}")
    recent = context.session_history[-_RECENT_SESSIONS:]
    if recent:
        print("Recent sessions:")
        for entry in reversed(recent):
            line = f"  [{entry.datetime}] {entry.task or '(no task)'}"
            if entry.summary:
                line += f" - {entry.summary}"
            print(line)


def _cmd_load(locator: CacheLocator) -> int:
    try:
        result = load_context(locator)
    except CacheNotFound:
        print("No saved context for this project yet. Run `ctxcache save` first.")
        return 1
    except CacheParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result.restored:
        print(f"Note: restored from backup {result.source}")
    elif result.source_kind == "legacy":
        print(f"Note: migrated legacy cache {result.source.name}")
    _print_context(result.context)
    return 0


def _cmd_save(locator: CacheLocator, config: CacheConfig, task: str, summary: str) -> int:
    previous = load_previous(locator)
    if config.project:
        metadata = ProjectMetadata.from_mapping(config.project)
    elif previous is not None:
        metadata = previous.metadata()
    else:
        metadata = ProjectMetadata()

    result = save_context(locator, metadata, task=task, summary=summary, previous=previous)
    print(f"Saved session {result.context.total_sessions} to {result.primary}")
    if result.backup_error is not None:
        print(f"Warning: {result.backup_error}", file=sys.stderr)
    for failure in result.cleanup_failures:
        print(f"Warning: {failure}", file=sys.stderr)
    return 0


def _cmd_paths(locator: CacheLocator) -> int:
    print(f"Cache directory: {locator.cache_dir}")
    print(f"Fingerprint:     {locator.fingerprint}")
    for label, path in (
        ("primary", locator.primary),
        ("legacy", locator.legacy),
        ("backup", locator.backup),
    ):
        marker = "exists" if path.exists() else "missing"
        print(f"  {label:<8} {path} ({marker})")
    return 0


def run(
    argv: list[str] | None = None,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> int:
    """Run one command and return the process exit status."""
    args = _build_parser().parse_args(argv)
    env = os.environ if env is None else env
    cwd = cwd or Path.cwd()

    config = load_config(env=env, cwd=cwd)
    _setup_logging(config.log_level)

    try:
        locator = CacheLocator.resolve(env, cwd, cache_dir=config.cache_dir)
        if args.command == "load":
            return _cmd_load(locator)
        if args.command == "save":
            return _cmd_save(locator, config, args.task, args.summary)
        return _cmd_paths(locator)
    except ContextCacheError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
