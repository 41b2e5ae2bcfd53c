"""Exception types raised by codex-launch.

Helpers raise these; only the CLI boundary turns them into a printed
message and a non-zero exit status.
"""


class LaunchError(Exception):
    """Base class for all user-facing codex-launch failures."""


class ConfigError(LaunchError):
    """Config file is unreadable, invalid TOML, or has wrong value types."""


class ScanError(LaunchError):
    """A directory of the session archive could not be listed."""


class SessionNotFoundError(LaunchError):
    """No session matched an id or a query."""


class TargetNotFoundError(LaunchError):
    """No project target matched a query."""


class NoTargetsError(LaunchError):
    """Target discovery produced nothing to pick from."""


class NotATerminalError(LaunchError):
    """An interactive UI was requested without a TTY."""

    def __init__(self, message: str = ""):
        super().__init__(
            message
            or "The input device is not a TTY. "
            "Re-run with `--no-ui` to print lists without prompts."
        )


class PickerCrashedError(LaunchError):
    """The interactive picker failed; the terminal has been restored."""


class CommandFailedError(LaunchError):
    """A launched command could not be started or exited non-zero."""
