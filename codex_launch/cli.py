"""Command-line entry point for codex-launch."""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from codex_launch import launcher, select_tui
from codex_launch.config import Config, load_or_init, resolve_config_path
from codex_launch.errors import (
    LaunchError,
    NoTargetsError,
    NotATerminalError,
    SessionNotFoundError,
)
from codex_launch.formatting import compact_path, format_when
from codex_launch.picker import (
    NewSession,
    OpenConfig,
    PickerData,
    ProjectPick,
    ResumeSession,
)
from codex_launch.projects import (
    ProjectTarget,
    gather_targets,
    prioritize_current_target,
)
from codex_launch.quick import launch_by_query, resume_by_query, resume_scan_limit
from codex_launch.session_index import (
    AllSessions,
    ScopedSessions,
    find_session_by_id,
    list_sessions,
)
from codex_launch.session_scan import SessionRecord
from codex_launch.terminal import is_interactive, run_picker

logger = logging.getLogger(__name__)

# Group options that consume the following argument
_VALUE_OPTIONS = {"--config", "--limit", "--resume", "-c", "-n", "-r"}

# Modes that take priority over a positional project query
_PRIORITY_OPTIONS = {"--resume", "-r", "--recent"}


class LaunchGroup(click.Group):
    """Group that treats an unknown first word as a project query."""

    def parse_args(self, ctx, args):
        # Skip over group options (and their values) to find the first word;
        # if it is not a subcommand, route it to the hidden `launch` command.
        # With --resume or --recent the word is dropped, those modes win.
        i = 0
        priority_mode = False
        while i < len(args):
            arg = args[i]
            if arg == "--":
                break
            if arg.startswith("-"):
                if arg.split("=", 1)[0] in _PRIORITY_OPTIONS:
                    priority_mode = True
                if arg in _VALUE_OPTIONS:
                    i += 1
                i += 1
                continue
            if arg not in self.commands:
                if priority_mode:
                    args = args[:i] + args[i + 1:]
                else:
                    args = args[:i] + ["launch"] + args[i:]
            break
        return super().parse_args(ctx, args)


@dataclass
class AppContext:
    """Options shared by every subcommand."""

    config_path: Path
    dry_run: bool = False
    no_ui: bool = False
    _cfg: Optional[Config] = field(default=None, repr=False)

    @property
    def cfg(self) -> Config:
        """Config, loaded (or initialized) on first use."""
        if self._cfg is None:
            self._cfg = load_or_init(self.config_path)
        return self._cfg

    def save(self) -> None:
        self.cfg.save(self.config_path)


def setup_logging(verbose: bool) -> None:
    """Send log records to stderr through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


def require_tty(no_ui: bool = False) -> None:
    """
    Refuse to start an interactive UI without a terminal.

    Raises:
        NotATerminalError: If stdin or stdout is not a TTY
    """
    if not no_ui and not is_interactive(sys.stdin, sys.stdout):
        raise NotATerminalError()


def select_target(candidates: Sequence[ProjectTarget]) -> Optional[ProjectTarget]:
    """Let the user choose among ambiguous project matches."""
    require_tty()
    return select_tui.pick_target(candidates)


def share_one_folder(sessions: Sequence[SessionRecord]) -> bool:
    """True when every session ran in the same folder."""
    return len({s.cwd for s in sessions}) == 1


def select_session(candidates: Sequence[SessionRecord]) -> Optional[SessionRecord]:
    """Let the user choose among ambiguous session matches."""
    require_tty()
    return select_tui.pick_session(candidates, hide_path=share_one_folder(candidates))


def print_sessions_tsv(sessions: Sequence[SessionRecord]) -> None:
    """One tab-separated line per session: id, created_at, cwd, summary."""
    for s in sessions:
        click.echo(f"{s.id}\t{s.created_at or ''}\t{s.cwd}\t{s.summary or ''}")


def print_targets_table(targets: Sequence[ProjectTarget]) -> None:
    """Show targets as a rich table on stdout."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Label", style="bold")
    table.add_column("Kind", style="dim")
    table.add_column("Path")
    table.add_column("Last session", style="green")
    for t in targets:
        table.add_row(
            t.label,
            t.kind.value,
            compact_path(t.path, 52),
            format_when(t.last_session_at),
        )
    Console(highlight=False).print(table)


def show_recent(app: AppContext, scoped: bool, limit: Optional[int]) -> None:
    """List recent sessions, or pick one and resume it."""
    require_tty(app.no_ui)
    cfg = app.cfg
    n = cfg.sessions.limit if limit is None else limit
    query = ScopedSessions(limit=n) if scoped else AllSessions(limit=n)
    sessions = list_sessions(cfg, query)
    if not sessions:
        click.echo("No sessions found.")
        return
    if app.no_ui:
        print_sessions_tsv(sessions)
        return
    picked = select_tui.pick_session(sessions, hide_path=share_one_folder(sessions))
    if picked is not None:
        launcher.launch_resume(cfg, picked, app.dry_run)


def dispatch_pick(app: AppContext, pick: ProjectPick) -> None:
    """Carry out what the picker returned."""
    if isinstance(pick, NewSession):
        launcher.launch_new(app.cfg, pick.target, app.dry_run)
    elif isinstance(pick, ResumeSession):
        launcher.launch_resume(app.cfg, pick.session, app.dry_run)
    elif isinstance(pick, OpenConfig):
        launcher.open_config(app.config_path, app.dry_run)
    else:
        logger.debug("picker quit")


@click.group(cls=LaunchGroup, invoke_without_command=True)
@click.option("--config", "-c", "config_path", help="Config file (default: ~/.codex-launch/config.toml)")
@click.option("--dry-run", is_flag=True, help="Print the command instead of running it")
@click.option("--no-ui", is_flag=True, help="Print lists instead of showing a UI")
@click.option("--recent", is_flag=True, help="Pick from recent sessions under configured folders")
@click.option("--all-sessions", is_flag=True, help="With --recent: include sessions from anywhere")
@click.option("--limit", "-n", type=click.IntRange(min=0), help="With --recent: how many sessions")
@click.option("--resume", "-r", "resume_query", help="Resume the session best matching QUERY")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging to stderr")
@click.version_option(package_name="codex-launch")
@click.pass_context
def main(
    ctx,
    config_path,
    dry_run,
    no_ui,
    recent,
    all_sessions,
    limit,
    resume_query,
    verbose,
):
    """
    Launch or resume Codex sessions by project.

    With no command the interactive picker opens. A first word that is
    not a command is a fuzzy project query.

    Examples:

    \b
        codex-launch                    # Picker: projects, scoped and all sessions
        codex-launch myrepo             # New session in the best matching project
        codex-launch --resume "fix ci"  # Resume the best matching session
        codex-launch --recent --all-sessions --no-ui
        codex-launch add-root ~/code
    """
    setup_logging(verbose)
    app = AppContext(
        config_path=resolve_config_path(config_path),
        dry_run=dry_run,
        no_ui=no_ui,
    )
    ctx.obj = app

    if ctx.invoked_subcommand is not None:
        return
    try:
        if resume_query is not None:
            picked = resume_by_query(app.cfg, resume_query, select_session)
            if picked is not None:
                launcher.launch_resume(app.cfg, picked, dry_run)
        elif recent:
            show_recent(app, scoped=not all_sessions, limit=limit)
        else:
            run_pick(app)
    except LaunchError as e:
        raise click.ClickException(str(e)) from e


def run_pick(app: AppContext) -> None:
    """Gather targets and sessions, then open the picker."""
    cfg = app.cfg
    targets = gather_targets(cfg)
    if not targets:
        raise NoTargetsError(
            "No targets configured. Add a root with `codex-launch add-root <path>` "
            "or an explicit folder with `codex-launch add-path <path>`."
        )
    targets = prioritize_current_target(cfg, targets, Path.cwd())
    sessions_index = list_sessions(cfg, AllSessions(limit=resume_scan_limit(cfg)))
    scoped = [s for s in sessions_index if cfg.is_scoped_target(s.cwd)]

    if app.no_ui:
        for t in targets:
            click.echo(str(t.path))
        return

    data = PickerData(
        targets=tuple(targets),
        scoped_sessions=tuple(scoped),
        all_sessions=tuple(sessions_index),
        sessions_limit=cfg.sessions.limit,
    )
    dispatch_pick(app, run_picker(data))


def _run(fn, *args, **kwargs) -> None:
    """Call ``fn``, turning LaunchError into a click error exit."""
    try:
        fn(*args, **kwargs)
    except LaunchError as e:
        raise click.ClickException(str(e)) from e


@main.command("pick")
@click.pass_obj
def pick_cmd(app: AppContext):
    """Open the interactive picker (the default)."""
    _run(run_pick, app)


@main.command("launch", hidden=True)
@click.argument("query")
@click.pass_obj
def launch_cmd(app: AppContext, query: str):
    """Start a new session in the project best matching QUERY."""

    def go():
        target = launch_by_query(app.cfg, query, select_target)
        if target is not None:
            launcher.launch_new(app.cfg, target, app.dry_run)

    _run(go)


@main.command("list")
@click.pass_obj
def list_cmd(app: AppContext):
    """List project targets."""

    def go():
        targets = gather_targets(app.cfg)
        if app.no_ui:
            for t in targets:
                click.echo(t.display_line())
        else:
            print_targets_table(targets)

    _run(go)


@main.command("add-root")
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_obj
def add_root_cmd(app: AppContext, path: Path):
    """Add a folder whose git repos become targets."""

    def go():
        added = app.cfg.add_root(path)
        app.save()
        launcher.print_info(f"Added root {added}")

    _run(go)


@main.command("add-path")
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_obj
def add_path_cmd(app: AppContext, path: Path):
    """Add a folder as a target (git or not)."""

    def go():
        added = app.cfg.add_path(path)
        app.save()
        launcher.print_info(f"Added path {added}")

    _run(go)


@main.command("rm")
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_obj
def rm_cmd(app: AppContext, path: Path):
    """Remove a configured root or path."""

    def go():
        removed = app.cfg.remove_path_or_root(path)
        app.save()
        launcher.print_info(f"Removed {removed}")

    _run(go)


@main.command("recent")
@click.option("--scoped", is_flag=True, help="Only sessions under configured folders")
@click.option("--limit", "-n", type=click.IntRange(min=0), help="How many sessions")
@click.pass_obj
def recent_cmd(app: AppContext, scoped: bool, limit: Optional[int]):
    """Pick a recent session to resume (all folders by default)."""
    _run(show_recent, app, scoped=scoped, limit=limit)


@main.command("resume-id")
@click.argument("session_id")
@click.pass_obj
def resume_id_cmd(app: AppContext, session_id: str):
    """Resume a session by its exact id."""

    def go():
        found = find_session_by_id(app.cfg, session_id)
        if found is None:
            raise SessionNotFoundError(f"session id not found: {session_id}")
        launcher.launch_resume(app.cfg, found, app.dry_run)

    _run(go)


@main.command("where-config")
@click.pass_obj
def where_config_cmd(app: AppContext):
    """Print the config file path."""
    click.echo(str(app.config_path))


if __name__ == "__main__":
    main()
