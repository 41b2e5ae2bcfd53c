"""Non-interactive quick launch/resume by fuzzy query."""

import logging
from typing import Callable, Optional, Sequence

from codex_launch.config import Config
from codex_launch.errors import LaunchError, SessionNotFoundError, TargetNotFoundError
from codex_launch.fuzzy import TOP_SESSIONS, TOP_TARGETS, confident_pick, rank
from codex_launch.projects import ProjectTarget, gather_targets
from codex_launch.session_index import AllSessions, list_sessions
from codex_launch.session_scan import SessionRecord

logger = logging.getLogger(__name__)

TargetSelector = Callable[[Sequence[ProjectTarget]], Optional[ProjectTarget]]
SessionSelector = Callable[[Sequence[SessionRecord]], Optional[SessionRecord]]


def target_haystack(target: ProjectTarget) -> str:
    """Text a project query is matched against."""
    return f"{target.label} {target.path}"


def session_haystack(session: SessionRecord) -> str:
    """Text a resume query is matched against."""
    return f"{session.id} {session.cwd} {session.summary or ''}"


def resume_scan_limit(cfg: Config) -> int:
    """How many recent sessions quick resume considers."""
    return max(cfg.projects.sessions_limit, cfg.sessions.limit)


def match_target(
    targets: Sequence[ProjectTarget], query: str, select: TargetSelector
) -> Optional[ProjectTarget]:
    """
    Resolve a project query against targets.

    A clear winner is returned directly; otherwise the top candidates go
    to ``select`` (None means the user cancelled).

    Raises:
        LaunchError: If the query is empty
        TargetNotFoundError: If nothing matches
    """
    query = query.strip()
    if not query:
        raise LaunchError("empty project query")
    scored = rank(query, targets, key=target_haystack)
    if not scored:
        raise TargetNotFoundError(f"no project matches for: {query}")
    chosen, candidates = confident_pick(scored, top_n=TOP_TARGETS)
    if chosen is not None:
        logger.debug("confident project match for %r: %s", query, chosen.path)
        return chosen
    return select(candidates)


def match_session(
    sessions: Sequence[SessionRecord], query: str, select: SessionSelector
) -> Optional[SessionRecord]:
    """
    Resolve a resume query against recent sessions.

    Raises:
        LaunchError: If the query is empty
        SessionNotFoundError: If nothing matches
    """
    query = query.strip()
    if not query:
        raise LaunchError("empty resume query")
    scored = rank(query, sessions, key=session_haystack)
    if not scored:
        raise SessionNotFoundError(f"no session matches for: {query}")
    chosen, candidates = confident_pick(scored, top_n=TOP_SESSIONS)
    if chosen is not None:
        logger.debug("confident session match for %r: %s", query, chosen.id)
        return chosen
    return select(candidates)


def launch_by_query(
    cfg: Config, query: str, select: TargetSelector
) -> Optional[ProjectTarget]:
    """Gather targets and resolve ``query`` to one of them."""
    return match_target(gather_targets(cfg), query, select)


def resume_by_query(
    cfg: Config, query: str, select: SessionSelector
) -> Optional[SessionRecord]:
    """Scan recent sessions and resolve ``query`` to one of them."""
    sessions = list_sessions(cfg, AllSessions(limit=resume_scan_limit(cfg)))
    return match_session(sessions, query, select)
