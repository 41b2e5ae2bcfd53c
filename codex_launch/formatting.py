"""Display helpers for paths, timestamps and one-line summaries."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

ELLIPSIS = "…"

_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def compact_path(path: Path, max_chars: int, home: Optional[Path] = None) -> str:
    """
    Render a path for a list row.

    The home directory is shown as ``~`` and paths longer than
    ``max_chars`` keep their tail (the part that identifies the project)
    behind a leading ellipsis.

    Args:
        path: Path to render
        max_chars: Maximum width in characters
        home: Home directory override (default: current user's home)

    Returns:
        Compact display string
    """
    s = str(path)
    home_str = str(home if home is not None else Path.home()).rstrip("/")
    # No elision when home is the filesystem root
    if home_str:
        if s == home_str:
            s = "~"
        elif s.startswith(home_str + "/"):
            s = "~/" + s[len(home_str) + 1:]

    if len(s) <= max_chars:
        return s
    keep = max(max_chars - 3, 0)
    return ELLIPSIS + (s[-keep:] if keep else "")


def basename(path: Path) -> str:
    """Return the last path component, or the whole path for roots."""
    return path.name or str(path)


def truncate_one_line(text: str, max_chars: int) -> str:
    """Cut ``text`` to ``max_chars`` characters, ending with an ellipsis."""
    if len(text) <= max_chars:
        return text
    return text[: max(max_chars - 1, 0)] + ELLIPSIS


def first_line(text: str) -> str:
    """Return the first non-blank line of ``text`` with tabs expanded, trimmed."""
    text = text.replace("\t", " ")
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def parse_rfc3339(value: str) -> Optional[datetime]:
    """Parse an RFC3339 timestamp, returning None when it is not one."""
    try:
        dt = datetime.fromisoformat(value.strip())
    except (ValueError, AttributeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_short(dt: datetime) -> str:
    """Format as e.g. ``Jan20 00:06``."""
    return f"{_MONTHS[dt.month - 1]}{dt.day:02d} {dt.hour:02d}:{dt.minute:02d}"


def format_age(dt: datetime, now: Optional[datetime] = None) -> str:
    """
    Format the time elapsed since ``dt`` as a compact age.

    Buckets: ``now`` (<1m), minutes, hours, days (<14d), weeks (<52w),
    then years.
    """
    now = now or datetime.now(timezone.utc)
    secs = max(int((now - dt).total_seconds()), 0)

    if secs < 60:
        return "now"
    mins = secs // 60
    if mins < 60:
        return f"{mins}m"
    hours = mins // 60
    if hours < 24:
        return f"{hours}h"
    days = hours // 24
    if days < 14:
        return f"{days}d"
    weeks = days // 7
    if weeks < 52:
        return f"{weeks}w"
    return f"{weeks // 52}y"


def format_when(timestamp: Optional[str], now: Optional[datetime] = None) -> str:
    """Render ``"<age> <short date>"`` for a timestamp string, or ``-``."""
    dt = parse_rfc3339(timestamp) if timestamp else None
    if dt is None:
        return "-"
    return f"{format_age(dt, now)} {format_short(dt)}"
