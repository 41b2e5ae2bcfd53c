"""Shared fixtures: a throwaway Codex home and rollout file writer."""

import json
from pathlib import Path

import pytest

from codex_launch.config import Config


def write_rollout(
    sessions_root: Path,
    day: str,
    stamp: str,
    session_id: str,
    cwd,
    user_texts=(),
    timestamp=None,
):
    """
    Write a minimal rollout file under ``sessions_root/YYYY/MM/DD``.

    Args:
        sessions_root: The ``<codex_home>/sessions`` directory
        day: Date as ``YYYY-MM-DD``
        stamp: Time part of the file name, e.g. ``10-30-00``
        session_id: Session id stored in the meta line
        cwd: Working directory stored in the meta line
        user_texts: User messages appended after the meta line
        timestamp: Meta timestamp (default derived from day/stamp)
    """
    year, month, dom = day.split("-")
    folder = sessions_root / year / month / dom
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"rollout-{day}T{stamp}-{session_id}.jsonl"
    entries = [
        {
            "timestamp": timestamp or f"{day}T{stamp.replace('-', ':')}Z",
            "type": "session_meta",
            "payload": {
                "id": session_id,
                "cwd": str(cwd),
                "cli_version": "0.50.0",
                "model_provider": "openai",
                "source": "cli",
            },
        }
    ]
    for text in user_texts:
        entries.append(
            {
                "type": "response_item",
                "payload": {
                    "type": "message",
                    "role": "user",
                    "content": [{"type": "input_text", "text": text}],
                },
            }
        )
    path.write_text("\n".join(json.dumps(e) for e in entries) + "\n")
    return path


@pytest.fixture
def codex_home(tmp_path):
    """Empty Codex home with a sessions directory."""
    home = tmp_path / "codex"
    (home / "sessions").mkdir(parents=True)
    return home


@pytest.fixture
def sessions_root(codex_home):
    """The ``sessions`` directory of the temporary Codex home."""
    return codex_home / "sessions"


@pytest.fixture
def cfg(codex_home):
    """Config pointing at the temporary Codex home, with no roots or paths."""
    config = Config()
    config.sessions.codex_home = codex_home
    config.projects.roots = []
    config.projects.paths = []
    return config


def make_repo(path: Path, git_file: bool = False) -> Path:
    """Create a folder that looks like a git repo root."""
    path.mkdir(parents=True, exist_ok=True)
    if git_file:
        (path / ".git").write_text("gitdir: /elsewhere/.git/worktrees/x\n")
    else:
        (path / ".git").mkdir()
    return path
