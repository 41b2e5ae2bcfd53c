"""Query recent sessions from the archive with scope filters and limits."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from codex_launch.config import Config
from codex_launch.session_scan import (
    SessionRecord,
    iter_rollout_files,
    read_session_record,
)

logger = logging.getLogger(__name__)

# Bound on upward hops when looking for a repository root
MAX_GIT_ROOT_HOPS = 25


@dataclass(frozen=True)
class AllSessions:
    """Every session, newest first."""

    limit: int


@dataclass(frozen=True)
class ScopedSessions:
    """Sessions whose cwd is under a configured root or path."""

    limit: int


@dataclass(frozen=True)
class SessionsForCwd:
    """Sessions whose cwd is ``cwd`` or below it."""

    cwd: Path
    limit: int


@dataclass(frozen=True)
class SessionsForRepoRoot:
    """Sessions whose cwd belongs to the git repo rooted at ``repo_root``."""

    repo_root: Path
    limit: int


SessionQuery = Union[AllSessions, ScopedSessions, SessionsForCwd, SessionsForRepoRoot]


def is_git_repo_root(path: Path) -> bool:
    """True if ``path`` contains a ``.git`` directory or file (worktrees)."""
    dotgit = path / ".git"
    try:
        return dotgit.is_dir() or dotgit.is_file()
    except OSError:
        return False


def find_git_root(start: Path, max_hops: int = MAX_GIT_ROOT_HOPS) -> Optional[Path]:
    """
    Find the nearest ancestor of ``start`` (inclusive) that is a git root.

    Args:
        start: Directory to start from
        max_hops: Maximum number of directories examined

    Returns:
        Repository root, or None if none found within ``max_hops``
    """
    cur = start
    for _ in range(max_hops):
        if is_git_repo_root(cur):
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    return None


def _build_filter(cfg: Config, query: SessionQuery) -> Callable[[Path], bool]:
    """Return the cwd predicate for a query."""
    if isinstance(query, AllSessions):
        return lambda cwd: True
    if isinstance(query, ScopedSessions):
        return cfg.is_scoped_target
    if isinstance(query, SessionsForCwd):
        root = query.cwd
        return lambda cwd: cwd.is_relative_to(root)
    if isinstance(query, SessionsForRepoRoot):
        repo_root = query.repo_root
        return lambda cwd: find_git_root(cwd) == repo_root
    raise TypeError(f"unknown session query: {query!r}")


def _iter_records(cfg: Config):
    """Yield SessionRecords newest-first, skipping unreadable or partial files."""
    for session_file in iter_rollout_files(cfg.sessions_root):
        try:
            record = read_session_record(session_file)
        except OSError as e:
            logger.debug("skipping unreadable session %s: %s", session_file, e)
            continue
        if record is not None:
            yield record


def list_sessions(cfg: Config, query: SessionQuery) -> list[SessionRecord]:
    """
    List recent sessions matching a query, newest first.

    The archive walk stops once ``query.limit`` matching records are
    collected; the limit counts matches, not files scanned.

    Args:
        cfg: Launcher config (archive location, scoped roots/paths)
        query: One of the SessionQuery variants

    Returns:
        Up to ``query.limit`` records

    Raises:
        ScanError: If an archive directory cannot be listed
    """
    matches = _build_filter(cfg, query)
    items: list[SessionRecord] = []
    if query.limit <= 0:
        return items

    for record in _iter_records(cfg):
        if not matches(record.cwd):
            continue
        items.append(record)
        if len(items) >= query.limit:
            break

    logger.debug("%s -> %d sessions", query, len(items))
    return items


def find_session_by_id(cfg: Config, session_id: str) -> Optional[SessionRecord]:
    """
    Find a session by exact id, scanning the whole archive if needed.

    Raises:
        ScanError: If an archive directory cannot be listed
    """
    for record in _iter_records(cfg):
        if record.id == session_id:
            return record
    return None
