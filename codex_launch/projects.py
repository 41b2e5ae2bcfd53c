"""Discover project targets: folders a new Codex session can start in."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from codex_launch.config import Config
from codex_launch.errors import ScanError
from codex_launch.formatting import (
    basename,
    compact_path,
    first_line,
    format_when,
    truncate_one_line,
)
from codex_launch.session_index import (
    AllSessions,
    SessionsForCwd,
    SessionsForRepoRoot,
    find_git_root,
    is_git_repo_root,
    list_sessions,
)
from codex_launch.session_scan import SessionRecord

logger = logging.getLogger(__name__)

NOISE_DIRS = {"node_modules", "target", "dist", "build"}


class TargetKind(str, Enum):
    """Where a target came from, in precedence order."""

    EXPLICIT_PATH = "explicit-path"
    ROOT_GIT_REPO = "root-git-repo"
    SESSION_HISTORY = "session-history"
    CURRENT_DIR = "current-dir"


@dataclass
class ProjectTarget:
    """A folder the user may open a new session in."""

    path: Path
    kind: TargetKind
    label: str
    last_session_at: Optional[str] = None
    last_session_summary: Optional[str] = None

    def display_line(self) -> str:
        """Row text for pickers and fuzzy filtering."""
        path = compact_path(self.path, 52)
        last = format_when(self.last_session_at)
        summary = ""
        if self.last_session_summary:
            summary = truncate_one_line(first_line(self.last_session_summary), 64)
        line = f"{self.label:<22}  {path:<52}  {last}"
        if summary:
            line += f"  {summary}"
        return line

    def absorb_session(self, session: SessionRecord) -> bool:
        """
        Take last-session metadata from ``session`` if it is newer.

        Returns:
            True if the metadata was replaced
        """
        current, candidate = self.last_session_at, session.created_at
        if current is None and candidate is not None:
            replace = True
        elif current is not None and candidate is not None:
            replace = candidate > current
        elif current is None and candidate is None:
            replace = self.last_session_summary is None
        else:
            replace = False
        if replace:
            self.last_session_at = session.created_at
            self.last_session_summary = session.summary
        return replace

    def __str__(self) -> str:
        return self.display_line()


def is_hidden_or_noise(path: Path) -> bool:
    """Skip dot-folders and build/dependency output when scanning roots."""
    return path.name.startswith(".") or path.name in NOISE_DIRS


def _scan_root(root: Path) -> list[Path]:
    """Return git repos directly under ``root``, sorted by name."""
    try:
        children = sorted(root.iterdir())
    except OSError as e:
        raise ScanError(f"failed to read dir {root}: {e}") from e
    repos = []
    for child in children:
        try:
            if not child.is_dir():
                continue
        except OSError:
            continue
        if is_hidden_or_noise(child) or not is_git_repo_root(child):
            continue
        repos.append(child)
    return repos


def infer_target_from_session_cwd(cwd: Path) -> Optional[Path]:
    """
    Map a session cwd to a project target.

    Only existing folders inside a git repo yield a target (the repo root);
    non-git folders must be added explicitly.
    """
    if not cwd.is_dir():
        return None
    return find_git_root(cwd)


def sort_targets(targets: list[ProjectTarget]) -> list[ProjectTarget]:
    """Recently used targets first (newest first), then by label."""
    with_time = [t for t in targets if t.last_session_at is not None]
    without = [t for t in targets if t.last_session_at is None]
    with_time.sort(key=lambda t: t.label.lower())
    with_time.sort(key=lambda t: t.last_session_at, reverse=True)
    without.sort(key=lambda t: t.label.lower())
    return with_time + without


def gather_targets(cfg: Config) -> list[ProjectTarget]:
    """
    Collect project targets from config and session history.

    Sources, in precedence order: explicit paths, git repos one level
    under each root, git roots of recent session cwds. The first source
    to register a path fixes its kind; newer sessions still refresh the
    last-session metadata.

    Raises:
        ScanError: If a root or the session archive cannot be read
    """
    by_path: dict[Path, ProjectTarget] = {}

    for p in cfg.projects.paths:
        if not p.is_dir():
            logger.debug("skipping missing path %s", p)
            continue
        by_path.setdefault(
            p, ProjectTarget(path=p, kind=TargetKind.EXPLICIT_PATH, label=basename(p))
        )

    for root in cfg.projects.roots:
        if not root.is_dir():
            logger.debug("skipping missing root %s", root)
            continue
        for repo in _scan_root(root):
            by_path.setdefault(
                repo,
                ProjectTarget(
                    path=repo, kind=TargetKind.ROOT_GIT_REPO, label=basename(repo)
                ),
            )

    if cfg.projects.from_sessions:
        sessions = list_sessions(cfg, AllSessions(limit=cfg.projects.sessions_limit))
        for s in sessions:
            inferred = infer_target_from_session_cwd(s.cwd)
            if inferred is None:
                continue
            existing = by_path.get(inferred)
            if existing is not None:
                existing.absorb_session(s)
            else:
                by_path[inferred] = ProjectTarget(
                    path=inferred,
                    kind=TargetKind.SESSION_HISTORY,
                    label=basename(inferred),
                    last_session_at=s.created_at,
                    last_session_summary=s.summary,
                )

    return sort_targets(list(by_path.values()))


def prioritize_current_target(
    cfg: Config, targets: list[ProjectTarget], cwd: Optional[Path]
) -> list[ProjectTarget]:
    """
    Put the launch directory first.

    Inside a git repo the repo root is used. An existing target is moved
    to the front; otherwise a ``current-dir`` target is inserted, filled
    in with its newest session. The filesystem root is never added.

    Args:
        cfg: Launcher config
        targets: Gathered targets (not modified)
        cwd: Directory the launcher was started from

    Returns:
        New target list
    """
    if cwd is None or not cwd.is_dir():
        return list(targets)

    cur = find_git_root(cwd) or cwd
    for i, t in enumerate(targets):
        if t.path == cur:
            return [t] + targets[:i] + targets[i + 1:]

    if cur.parent == cur:
        return list(targets)

    target = ProjectTarget(path=cur, kind=TargetKind.CURRENT_DIR, label=basename(cur))
    repo_root = find_git_root(cur)
    if repo_root is not None:
        query = SessionsForRepoRoot(repo_root=repo_root, limit=1)
    else:
        query = SessionsForCwd(cwd=cur, limit=1)
    try:
        recent = list_sessions(cfg, query)
    except ScanError as e:
        logger.debug("no session metadata for %s: %s", cur, e)
        recent = []
    if recent:
        target.last_session_at = recent[0].created_at
        target.last_session_summary = recent[0].summary
    return [target] + list(targets)
