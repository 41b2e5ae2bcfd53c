"""Tests for building and running Codex commands."""

import subprocess
from pathlib import Path

import pytest

from codex_launch import launcher
from codex_launch.config import Config
from codex_launch.errors import CommandFailedError
from codex_launch.launcher import (
    Command,
    format_command,
    new_session_command,
    open_config_command,
    resume_command,
    run_command,
    shell_escape,
)
from codex_launch.projects import ProjectTarget, TargetKind
from codex_launch.session_scan import SessionRecord


@pytest.fixture
def config():
    cfg = Config()
    cfg.codex.bin = "codex"
    cfg.codex.args = ["--model", "o4-mini"]
    return cfg


class TestCommands:
    """Tests for command construction."""

    def test_new_session(self, config):
        """New sessions run the binary with args in the target folder."""
        target = ProjectTarget(Path("/w/app"), TargetKind.ROOT_GIT_REPO, "app")
        cmd = new_session_command(config, target)
        assert cmd == Command(argv=["codex", "--model", "o4-mini"], cwd=Path("/w/app"))

    def test_resume(self, config):
        """Resume appends the id and runs in the session's cwd."""
        session = SessionRecord(id="abc-123", cwd=Path("/w/app/sub"), source_path=Path("/r"))
        cmd = resume_command(config, session)
        assert cmd.argv == ["codex", "--model", "o4-mini", "resume", "abc-123"]
        assert cmd.cwd == Path("/w/app/sub")

    @pytest.mark.parametrize(
        "platform,argv0",
        [("darwin", "open"), ("win32", "cmd"), ("linux", "xdg-open")],
    )
    def test_open_config(self, platform, argv0):
        """Each OS uses its own opener."""
        cmd = open_config_command(Path("/c/config.toml"), platform=platform)
        assert cmd.argv[0] == argv0
        assert cmd.argv[-1] == "/c/config.toml"


class TestFormatting:
    """Tests for the dry-run rendering of commands."""

    def test_shell_escape(self):
        """Plain words stay bare; anything else is single-quoted."""
        assert shell_escape("codex") == "codex"
        assert shell_escape("a b") == "'a b'"
        assert shell_escape("it's") == "'it'\\''s'"
        assert shell_escape("") == "''"

    def test_format_with_cwd(self):
        """Commands with a folder render as a cd subshell."""
        cmd = Command(argv=["codex", "resume", "x y"], cwd=Path("/w/app"))
        assert format_command(cmd) == "(cd /w/app && codex resume 'x y')"


class TestRunCommand:
    """Tests for executing commands."""

    def test_dry_run_prints_and_does_not_run(self, monkeypatch, capsys):
        """Dry runs only print the command."""

        def fail(*args, **kwargs):
            raise AssertionError("subprocess must not run")

        monkeypatch.setattr(subprocess, "run", fail)

        run_command(Command(argv=["codex"], cwd=Path("/w/app")), dry_run=True)

        assert "DRY RUN: (cd /w/app && codex)" in capsys.readouterr().err

    def test_nonzero_exit(self, monkeypatch):
        """A failing command raises CommandFailedError."""
        monkeypatch.setattr(
            subprocess, "run", lambda argv, cwd=None: subprocess.CompletedProcess(argv, 3)
        )
        with pytest.raises(CommandFailedError, match="status: 3"):
            run_command(Command(argv=["codex"]))

    def test_missing_binary(self, tmp_path):
        """A binary that cannot be started raises CommandFailedError."""
        with pytest.raises(CommandFailedError, match="failed to run"):
            run_command(Command(argv=[str(tmp_path / "no-such-codex")]))

    def test_success(self, monkeypatch):
        """Exit status 0 returns normally and passes the cwd through."""
        calls = []

        def fake_run(argv, cwd=None):
            calls.append((argv, cwd))
            return subprocess.CompletedProcess(argv, 0)

        monkeypatch.setattr(subprocess, "run", fake_run)
        run_command(Command(argv=["codex"], cwd=Path("/w/app")))
        assert calls == [(["codex"], Path("/w/app"))]

    def test_launch_new_prints_status(self, config, monkeypatch, capsys):
        """Launching announces the folder on stderr."""
        monkeypatch.setattr(
            subprocess, "run", lambda argv, cwd=None: subprocess.CompletedProcess(argv, 0)
        )
        target = ProjectTarget(Path("/w/[weird]"), TargetKind.EXPLICIT_PATH, "weird")

        launcher.launch_new(config, target)

        assert "Launching Codex in /w/[weird]" in capsys.readouterr().err
