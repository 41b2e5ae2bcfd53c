"""
Configuration for codex-launch.

Defaults are defined here. The config lives in
~/.codex-launch/config.toml and is created with defaults on first run.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli_w

from codex_launch.errors import ConfigError

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CODEX_BIN = "codex"
DEFAULT_SESSIONS_LIMIT = 15
DEFAULT_PROJECTS_SESSIONS_LIMIT = 200
DEFAULT_FROM_SESSIONS = True


def default_codex_home() -> Path:
    """Codex home: $CODEX_HOME if set, else ~/.codex."""
    env_var = os.environ.get("CODEX_HOME")
    if env_var:
        return Path(env_var).expanduser()
    return Path.home() / ".codex"


def default_roots() -> list[Path]:
    """Best-effort default root: ~/Documents/Code."""
    return [Path.home() / "Documents" / "Code"]


@dataclass
class CodexConfig:
    """How to invoke the Codex CLI."""

    bin: str = DEFAULT_CODEX_BIN
    args: list[str] = field(default_factory=list)


@dataclass
class ProjectsConfig:
    """Where project targets come from."""

    # Parent folders scanned one level deep for git repos
    roots: list[Path] = field(default_factory=default_roots)
    # Explicit folders shown as targets (git or not)
    paths: list[Path] = field(default_factory=list)
    # Also infer targets from recent session history
    from_sessions: bool = DEFAULT_FROM_SESSIONS
    # How many recent sessions to scan when inferring targets
    sessions_limit: int = DEFAULT_PROJECTS_SESSIONS_LIMIT


@dataclass
class SessionsConfig:
    """Where session logs live and how many to show."""

    codex_home: Path = field(default_factory=default_codex_home)
    limit: int = DEFAULT_SESSIONS_LIMIT


@dataclass
class Config:
    """Complete launcher configuration."""

    codex: CodexConfig = field(default_factory=CodexConfig)
    projects: ProjectsConfig = field(default_factory=ProjectsConfig)
    sessions: SessionsConfig = field(default_factory=SessionsConfig)

    @property
    def sessions_root(self) -> Path:
        """Directory holding the YYYY/MM/DD session archive."""
        return self.sessions.codex_home / "sessions"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Build a Config from parsed TOML, filling gaps with defaults.

        Unknown keys are ignored.

        Raises:
            ConfigError: If a known key has the wrong type
        """
        codex = _section(data, "codex")
        projects = _section(data, "projects")
        sessions = _section(data, "sessions")

        cfg = cls()
        if "bin" in codex:
            cfg.codex.bin = _expect(codex["bin"], str, "codex.bin")
        if "args" in codex:
            cfg.codex.args = _expect_str_list(codex["args"], "codex.args")

        if "roots" in projects:
            cfg.projects.roots = [
                normalize(Path(p))
                for p in _expect_str_list(projects["roots"], "projects.roots")
            ]
        if "paths" in projects:
            cfg.projects.paths = [
                normalize(Path(p))
                for p in _expect_str_list(projects["paths"], "projects.paths")
            ]
        if "from_sessions" in projects:
            cfg.projects.from_sessions = _expect(
                projects["from_sessions"], bool, "projects.from_sessions"
            )
        if "sessions_limit" in projects:
            cfg.projects.sessions_limit = _expect_count(
                projects["sessions_limit"], "projects.sessions_limit"
            )

        if "codex_home" in sessions:
            cfg.sessions.codex_home = normalize(
                Path(_expect(sessions["codex_home"], str, "sessions.codex_home"))
            )
        if "limit" in sessions:
            cfg.sessions.limit = _expect_count(sessions["limit"], "sessions.limit")
        return cfg

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, with paths as strings."""
        return {
            "codex": {"bin": self.codex.bin, "args": list(self.codex.args)},
            "projects": {
                "roots": [str(p) for p in self.projects.roots],
                "paths": [str(p) for p in self.projects.paths],
                "from_sessions": self.projects.from_sessions,
                "sessions_limit": self.projects.sessions_limit,
            },
            "sessions": {
                "codex_home": str(self.sessions.codex_home),
                "limit": self.sessions.limit,
            },
        }

    def save(self, path: Path) -> None:
        """Write the config as TOML, creating parent directories."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(tomli_w.dumps(self.to_dict()), encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"failed to write {path}: {e}") from e
        logger.debug("wrote config %s", path)

    def add_root(self, path: Path) -> Path:
        """Add a root folder (scanned one level deep for git repos)."""
        p = _existing_dir(path)
        if p not in self.projects.roots:
            self.projects.roots.append(p)
        return p

    def add_path(self, path: Path) -> Path:
        """Add an explicit folder target."""
        p = _existing_dir(path)
        if p not in self.projects.paths:
            self.projects.paths.append(p)
        return p

    def remove_path_or_root(self, path: Path) -> Path:
        """
        Remove a configured root or path (exact match).

        Raises:
            ConfigError: If the path is neither a root nor a path
        """
        p = normalize(path)
        before = len(self.projects.roots) + len(self.projects.paths)
        self.projects.roots = [r for r in self.projects.roots if r != p]
        self.projects.paths = [x for x in self.projects.paths if x != p]
        if before == len(self.projects.roots) + len(self.projects.paths):
            raise ConfigError(f"not found in config: {p}")
        return p

    def is_scoped_target(self, cwd: Path) -> bool:
        """True if ``cwd`` lies under a configured path or root."""
        cwd = normalize(cwd)
        return any(
            cwd.is_relative_to(p)
            for p in [*self.projects.paths, *self.projects.roots]
        )


def resolve_config_path(arg: Optional[str] = None) -> Path:
    """
    Get the config file path.

    Args:
        arg: Optional --config value

    Returns:
        Path to config TOML (default: ~/.codex-launch/config.toml)
    """
    if arg:
        return normalize(Path(arg))
    return Path.home() / ".codex-launch" / "config.toml"


def load_or_init(path: Path) -> Config:
    """
    Load the config, or write and return defaults if it does not exist.

    Raises:
        ConfigError: If the file cannot be read or is not valid TOML
    """
    if path.exists():
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"failed to read {path}: {e}") from e
        try:
            data = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"invalid TOML: {path}: {e}") from e
        return Config.from_dict(data)

    logger.debug("config %s missing, writing defaults", path)
    cfg = Config()
    cfg.save(path)
    return cfg


def normalize(path: Path) -> Path:
    """Expand a leading ``~`` to the home directory."""
    s = str(path)
    if s == "~" or s.startswith("~/"):
        return path.expanduser()
    return path


def _existing_dir(path: Path) -> Path:
    p = normalize(path)
    if not p.exists():
        raise ConfigError(f"path does not exist: {p}")
    if not p.is_dir():
        raise ConfigError(f"not a directory: {p}")
    return p


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _expect(value: Any, kind: type, key: str) -> Any:
    if not isinstance(value, kind):
        raise ConfigError(f"{key} must be a {kind.__name__}")
    return value


def _expect_str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings")
    return value


def _expect_count(value: Any, key: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{key} must be a non-negative integer")
    return value
