"""Tests for session queries, limits and git root detection."""

from pathlib import Path

import pytest

from codex_launch import session_index
from codex_launch.session_index import (
    AllSessions,
    ScopedSessions,
    SessionsForCwd,
    SessionsForRepoRoot,
    find_git_root,
    find_session_by_id,
    is_git_repo_root,
    list_sessions,
)
from conftest import make_repo, write_rollout


def _stamp(i: int) -> str:
    return f"{i // 3600:02d}-{(i // 60) % 60:02d}-{i % 60:02d}"


class TestListSessions:
    """Tests for list_sessions query variants."""

    def test_scoped_limit_counts_matches(self, cfg, sessions_root, tmp_path):
        """Limit applies to matching sessions, newest first."""
        roots = [tmp_path / "r1", tmp_path / "r2", tmp_path / "r3"]
        cfg.projects.roots = roots
        i = 0
        for n in range(50):
            for root in roots:
                write_rollout(
                    sessions_root, "2025-02-01", _stamp(i), f"s{i:03d}", root / f"p{n}"
                )
                i += 1
            # Unscoped sessions interleaved with the scoped ones
            write_rollout(
                sessions_root, "2025-02-01", _stamp(i), f"s{i:03d}", tmp_path / "other"
            )
            i += 1

        items = list_sessions(cfg, ScopedSessions(limit=10))

        assert len(items) == 10
        assert all(cfg.is_scoped_target(s.cwd) for s in items)
        stamps = [s.created_at for s in items]
        assert stamps == sorted(stamps, reverse=True)
        # Newest scoped session is the last root of the last batch
        assert items[0].id == f"s{i - 2:03d}"

    def test_stops_reading_after_limit(self, cfg, sessions_root, monkeypatch):
        """Only as many files are opened as needed to fill the limit."""
        for i in range(20):
            write_rollout(sessions_root, "2025-02-01", _stamp(i), f"s{i}", "/w")

        opened = []
        real_read = session_index.read_session_record

        def counting_read(path):
            opened.append(path)
            return real_read(path)

        monkeypatch.setattr(session_index, "read_session_record", counting_read)

        items = list_sessions(cfg, AllSessions(limit=5))

        assert len(items) == 5
        assert len(opened) == 5

    def test_zero_limit_is_empty(self, cfg, sessions_root):
        """A zero limit returns nothing."""
        write_rollout(sessions_root, "2025-02-01", "00-00-01", "s1", "/w")
        assert list_sessions(cfg, AllSessions(limit=0)) == []

    def test_fewer_sessions_than_limit(self, cfg, sessions_root):
        """All matching sessions are returned when under the limit."""
        write_rollout(sessions_root, "2025-02-01", "00-00-01", "s1", "/w")
        write_rollout(sessions_root, "2025-02-01", "00-00-02", "s2", "/w")
        assert [s.id for s in list_sessions(cfg, AllSessions(limit=50))] == ["s2", "s1"]

    def test_for_cwd_includes_subfolders_only(self, cfg, sessions_root):
        """Sessions below the cwd match; siblings with a shared prefix do not."""
        write_rollout(sessions_root, "2025-02-01", "00-00-01", "inside", "/w/proj/sub")
        write_rollout(sessions_root, "2025-02-01", "00-00-02", "exact", "/w/proj")
        write_rollout(sessions_root, "2025-02-01", "00-00-03", "sibling", "/w/project2")

        items = list_sessions(cfg, SessionsForCwd(cwd=Path("/w/proj"), limit=10))

        assert [s.id for s in items] == ["exact", "inside"]

    def test_for_repo_root(self, cfg, sessions_root, tmp_path):
        """Sessions anywhere inside the repo match; nested repos do not."""
        repo = make_repo(tmp_path / "repo")
        nested = make_repo(repo / "vendor" / "lib")
        (repo / "src").mkdir()
        write_rollout(sessions_root, "2025-02-01", "00-00-01", "top", repo)
        write_rollout(sessions_root, "2025-02-01", "00-00-02", "src", repo / "src")
        write_rollout(sessions_root, "2025-02-01", "00-00-03", "nested", nested)
        write_rollout(sessions_root, "2025-02-01", "00-00-04", "out", tmp_path)

        items = list_sessions(cfg, SessionsForRepoRoot(repo_root=repo, limit=10))

        assert [s.id for s in items] == ["src", "top"]

    def test_skips_unreadable_files(self, cfg, sessions_root, monkeypatch):
        """A file that cannot be read is skipped, not fatal."""
        bad = write_rollout(sessions_root, "2025-02-01", "00-00-02", "bad", "/w")
        write_rollout(sessions_root, "2025-02-01", "00-00-01", "good", "/w")
        real_read = session_index.read_session_record

        def flaky_read(path):
            if path == bad:
                raise PermissionError("denied")
            return real_read(path)

        monkeypatch.setattr(session_index, "read_session_record", flaky_read)

        assert [s.id for s in list_sessions(cfg, AllSessions(limit=5))] == ["good"]


class TestFindSessionById:
    """Tests for exact id lookup."""

    def test_finds_old_session(self, cfg, sessions_root):
        """Lookup scans past any recent-session limit."""
        write_rollout(sessions_root, "2023-05-01", "00-00-01", "ancient", "/w/old")
        for i in range(30):
            write_rollout(sessions_root, "2025-02-01", _stamp(i), f"s{i}", "/w")

        found = find_session_by_id(cfg, "ancient")

        assert found is not None
        assert str(found.cwd) == "/w/old"

    def test_unknown_id(self, cfg, sessions_root):
        """Unknown ids return None."""
        write_rollout(sessions_root, "2025-02-01", "00-00-01", "s1", "/w")
        assert find_session_by_id(cfg, "nope") is None


class TestGitRoot:
    """Tests for repository root detection."""

    def test_git_dir_and_git_file(self, tmp_path):
        """Both a .git directory and a .git file (worktree) mark a root."""
        assert is_git_repo_root(make_repo(tmp_path / "a"))
        assert is_git_repo_root(make_repo(tmp_path / "b", git_file=True))
        assert not is_git_repo_root(tmp_path)

    def test_walks_up_to_root(self, tmp_path):
        """The nearest enclosing repo root is found."""
        repo = make_repo(tmp_path / "repo")
        deep = repo / "a" / "b" / "c"
        deep.mkdir(parents=True)
        assert find_git_root(deep) == repo

    def test_hop_limit(self, tmp_path):
        """The upward walk gives up after the hop limit."""
        repo = make_repo(tmp_path / "repo")
        deep = repo
        for i in range(30):
            deep = deep / f"d{i}"
        deep.mkdir(parents=True)

        assert find_git_root(deep) is None
        assert find_git_root(deep, max_hops=40) == repo

    def test_outside_any_repo(self, tmp_path):
        """No repo above the start gives None."""
        (tmp_path / "plain").mkdir()
        assert find_git_root(tmp_path / "plain") is None


@pytest.mark.parametrize("limit", [1, 3])
def test_all_sessions_respects_limit(cfg, sessions_root, limit):
    """AllSessions never returns more than its limit."""
    for i in range(5):
        write_rollout(sessions_root, "2025-02-01", _stamp(i), f"s{i}", "/w")
    assert len(list_sessions(cfg, AllSessions(limit=limit))) == limit
