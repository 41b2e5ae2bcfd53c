"""Build and run the Codex (and open-config) commands."""

import logging
import re
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from codex_launch.config import Config
from codex_launch.errors import CommandFailedError
from codex_launch.projects import ProjectTarget
from codex_launch.session_scan import SessionRecord

logger = logging.getLogger(__name__)

# Status lines go to stderr so stdout stays clean for --no-ui output
console = Console(stderr=True, highlight=False)

_SAFE_ARG = re.compile(r"^[A-Za-z0-9\-_./]+$")


@dataclass
class Command:
    """A program invocation with an optional working directory."""

    argv: list[str]
    cwd: Optional[Path] = None


def print_info(msg: str) -> None:
    """Print a dimmed ``info`` status line to stderr."""
    console.print(f"[dim]info[/dim] {escape(msg)}", soft_wrap=True)


def shell_escape(arg: str) -> str:
    """Quote an argument for display, leaving plain words alone."""
    if not arg:
        return "''"
    if _SAFE_ARG.match(arg):
        return arg
    return "'" + arg.replace("'", "'\\''") + "'"


def format_command(cmd: Command) -> str:
    """Render a command the way a user would type it."""
    base = " ".join(shell_escape(a) for a in cmd.argv)
    if cmd.cwd is not None:
        return f"(cd {cmd.cwd} && {base})"
    return base


def new_session_command(cfg: Config, target: ProjectTarget) -> Command:
    """``codex [args]`` in the target folder."""
    return Command(argv=[cfg.codex.bin, *cfg.codex.args], cwd=target.path)


def resume_command(cfg: Config, session: SessionRecord) -> Command:
    """``codex [args] resume <id>`` in the session's folder."""
    return Command(
        argv=[cfg.codex.bin, *cfg.codex.args, "resume", session.id],
        cwd=session.cwd,
    )


def open_config_command(config_path: Path, platform: Optional[str] = None) -> Command:
    """OS-specific command that opens a file in its default application."""
    platform = platform or sys.platform
    if platform == "darwin":
        return Command(argv=["open", str(config_path)])
    if platform.startswith("win"):
        return Command(argv=["cmd", "/C", "start", "", str(config_path)])
    return Command(argv=["xdg-open", str(config_path)])


def run_command(cmd: Command, dry_run: bool = False) -> None:
    """
    Run a command and wait for it.

    Args:
        cmd: Command to run
        dry_run: Only print what would run

    Raises:
        CommandFailedError: If the program is missing or exits non-zero
    """
    if dry_run:
        print_info(f"DRY RUN: {format_command(cmd)}")
        return

    logger.debug("running %s", format_command(cmd))
    try:
        result = subprocess.run(cmd.argv, cwd=cmd.cwd)
    except OSError as e:
        raise CommandFailedError(f"failed to run {format_command(cmd)}: {e}") from e
    if result.returncode != 0:
        raise CommandFailedError(f"command exited with status: {result.returncode}")


def launch_new(cfg: Config, target: ProjectTarget, dry_run: bool = False) -> None:
    """Start a new Codex session in ``target``."""
    print_info(f"Launching Codex in {target.path}")
    run_command(new_session_command(cfg, target), dry_run)


def launch_resume(cfg: Config, session: SessionRecord, dry_run: bool = False) -> None:
    """Resume ``session`` in its original folder."""
    print_info(f"Resuming {session.id} in {session.cwd}")
    run_command(resume_command(cfg, session), dry_run)


def open_config(config_path: Path, dry_run: bool = False) -> None:
    """Open the config file with the OS default application."""
    print_info(f"Opening config {config_path}")
    run_command(open_config_command(config_path), dry_run)
