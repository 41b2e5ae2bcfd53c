"""
Scan the Codex session archive and summarize individual rollout files.

Layout: <codex_home>/sessions/YYYY/MM/DD/rollout-<timestamp>-<id>.jsonl

Files are walked newest-first and lazily, so callers that only need the
most recent N sessions never touch the rest of the archive.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

from codex_launch.errors import ScanError
from codex_launch.formatting import compact_path, format_when, truncate_one_line

logger = logging.getLogger(__name__)

ROLLOUT_PREFIX = "rollout-"
ROLLOUT_SUFFIX = ".jsonl"

# Metadata sits at the top of a rollout; later lines are rarely needed
MAX_LINES = 300

BOILERPLATE_PREFIXES = (
    "# AGENTS.md instructions",
    "<environment_context>",
    "<user_shell_command>",
)
BOILERPLATE_MARKERS = ("<INSTRUCTIONS>",)


@dataclass(frozen=True)
class SessionRecord:
    """One resumable session, summarized from its rollout file."""

    id: str
    cwd: Path
    source_path: Path
    created_at: Optional[str] = None
    summary: Optional[str] = None
    cli_version: Optional[str] = None
    model_provider: Optional[str] = None
    source: Optional[str] = None

    def meta_tags(self, include_file: bool = True) -> list[str]:
        """Provenance tags shown in brackets after the summary."""
        tags = [
            t for t in (self.model_provider, self.source, self.cli_version) if t
        ]
        if include_file and self.source_path.name:
            tags.append(self.source_path.name)
        return tags

    def display_line(self, show_cwd: bool = True) -> str:
        """
        Render the row text used by the pickers and the fuzzy filter.

        Args:
            show_cwd: Include the compact cwd (redundant in per-project lists)
        """
        when = format_when(self.created_at)
        parts = [f"{when:<12}", f"{self.id[:8]:<8}"]
        if show_cwd:
            parts.append(compact_path(self.cwd, 56))
        if self.summary:
            parts.append(truncate_one_line(self.summary, 90))
        line = "  ".join(parts)
        tags = self.meta_tags(include_file=show_cwd)
        if tags:
            line += f"  [{' '.join(tags)}]"
        return line

    def __str__(self) -> str:
        return self.display_line()


def is_date_component(name: str) -> bool:
    """True for YYYY, MM and DD directory names."""
    return len(name) in (2, 4) and name.isascii() and name.isdigit()


def is_rollout_file(name: str) -> bool:
    """True for ``rollout-*.jsonl`` file names."""
    return name.startswith(ROLLOUT_PREFIX) and name.endswith(ROLLOUT_SUFFIX)


def _list_desc(parent: Path, want_dirs: bool) -> list[Path]:
    """
    List date directories or rollout files of ``parent``, newest name first.

    Raises:
        ScanError: If ``parent`` cannot be listed
    """
    try:
        entries = list(parent.iterdir())
    except OSError as e:
        raise ScanError(f"failed to read {parent}: {e}") from e

    picked = []
    for entry in entries:
        try:
            if want_dirs:
                ok = entry.is_dir() and is_date_component(entry.name)
            else:
                ok = entry.is_file() and is_rollout_file(entry.name)
        except OSError:
            continue
        if ok:
            picked.append(entry)
    # Zero-padded names make lexicographic order chronological
    picked.sort(key=lambda p: p.name, reverse=True)
    return picked


def iter_rollout_files(sessions_root: Path) -> Iterator[Path]:
    """
    Yield rollout files from newest to oldest.

    Order: year desc, month desc, day desc, then file name desc. A missing
    root yields nothing. Directories are listed only when the walk reaches
    them, so stopping the generator early skips the rest of the archive.

    Raises:
        ScanError: If a directory on the walk cannot be listed
    """
    if not sessions_root.exists():
        return

    for year_dir in _list_desc(sessions_root, want_dirs=True):
        for month_dir in _list_desc(year_dir, want_dirs=True):
            for day_dir in _list_desc(month_dir, want_dirs=True):
                yield from _list_desc(day_dir, want_dirs=False)


def looks_like_boilerplate(text: str) -> bool:
    """Check if user text is injected context (AGENTS.md, env context, ...)."""
    t = text.lstrip()
    return t.startswith(BOILERPLATE_PREFIXES) or any(
        marker in t for marker in BOILERPLATE_MARKERS
    )


def normalize_summary(text: str) -> str:
    """Reduce user text to its first non-blank line, tabs expanded, trimmed."""
    text = text.replace("\t", " ").replace("\r\n", "\n").replace("\r", "\n")
    for line in text.split("\n"):
        if line.strip():
            return line.strip()
    return ""


def extract_message_text(payload: dict[str, Any]) -> Optional[str]:
    """Return the first non-empty text fragment of a message payload."""
    content = payload.get("content")
    if not isinstance(content, list):
        return None
    for item in content:
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        if isinstance(text, str) and text.strip():
            return text.strip()
    return None


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@dataclass
class RecordAccumulator:
    """Fields collected while reading a rollout file line by line."""

    id: Optional[str] = None
    cwd: Optional[str] = None
    created_at: Optional[str] = None
    cli_version: Optional[str] = None
    model_provider: Optional[str] = None
    source: Optional[str] = None
    first_user_text: Optional[str] = None
    best_user_text: Optional[str] = None
    lines_seen: int = field(default=0, compare=False)

    def is_complete(self) -> bool:
        """True once id, cwd and a non-boilerplate summary are known."""
        return bool(self.id) and bool(self.cwd) and self.best_user_text is not None

    def feed(self, entry: Any) -> None:
        """Merge one parsed JSONL entry."""
        if not isinstance(entry, dict):
            return
        entry_type = entry.get("type")
        payload = entry.get("payload")

        if entry_type == "session_meta":
            if self.created_at is None:
                self.created_at = _opt_str(entry.get("timestamp"))
            if not isinstance(payload, dict):
                return
            self.id = _opt_str(payload.get("id"))
            self.cwd = _opt_str(payload.get("cwd"))
            self.cli_version = _opt_str(payload.get("cli_version"))
            self.model_provider = _opt_str(payload.get("model_provider"))
            self.source = _opt_str(payload.get("source"))

        elif entry_type == "response_item":
            if not isinstance(payload, dict):
                return
            if payload.get("type") != "message" or payload.get("role") != "user":
                return
            text = extract_message_text(payload)
            if text is None:
                return
            if self.first_user_text is None:
                self.first_user_text = text
            if self.best_user_text is None and not looks_like_boilerplate(text):
                self.best_user_text = text

    def build(self, source_path: Path) -> Optional[SessionRecord]:
        """Produce the record, or None if id or cwd never appeared."""
        if not self.id or not self.cwd:
            return None
        text = self.best_user_text or self.first_user_text
        summary = normalize_summary(text) if text else None
        return SessionRecord(
            id=self.id,
            cwd=Path(self.cwd),
            source_path=source_path,
            created_at=self.created_at,
            summary=summary or None,
            cli_version=self.cli_version,
            model_provider=self.model_provider,
            source=self.source,
        )


def read_session_record(
    session_file: Path, max_lines: int = MAX_LINES
) -> Optional[SessionRecord]:
    """
    Summarize a rollout file into a SessionRecord.

    Lines that are not valid JSON are skipped. Reading stops after
    ``max_lines`` lines or as soon as the record is complete.

    Args:
        session_file: Path to the rollout JSONL file
        max_lines: Safety cap on lines read

    Returns:
        SessionRecord, or None if the file has no id or cwd

    Raises:
        OSError: If the file cannot be opened or read
    """
    acc = RecordAccumulator()
    with open(session_file, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            if acc.lines_seen >= max_lines:
                break
            acc.lines_seen += 1
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                logger.debug(
                    "skipping malformed line %d in %s", acc.lines_seen, session_file
                )
                continue
            acc.feed(entry)
            if acc.is_complete():
                break
    return acc.build(session_file)
