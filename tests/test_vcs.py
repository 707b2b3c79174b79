"""Tests for the git history provider (uses a real temporary repository)."""

from pathlib import Path

import pytest

from conftest import commit_files, git
from docgraph.errors import HistoryUnavailableError
from docgraph.impact import ChangeImpactAnalyzer
from docgraph.vcs import GitHistory


def test_not_a_repository(temp_dir: Path):
    history = GitHistory(temp_dir)

    assert not history.is_available()
    assert history.info() is None
    with pytest.raises(HistoryUnavailableError):
        history.current_hash()


def test_missing_git_executable(git_repo: Path):
    history = GitHistory(git_repo, git_executable="definitely-not-git")

    assert not history.is_available()


def test_current_hash(git_repo: Path):
    history = GitHistory(git_repo)

    assert history.is_available()
    assert history.current_hash() == git(git_repo, "rev-parse", "HEAD")


def test_changed_files_with_line_counts(git_repo: Path):
    history = GitHistory(git_repo)
    old = history.current_hash()
    new = commit_files(git_repo, {
        "src/app.js": "import x from './lib';\nconsole.log(x);\nconsole.log(2);\n",
        "package.json": "{}\n",
    })

    changes = {c.path: c for c in history.changed_files(old, new)}

    assert set(changes) == {"src/app.js", "package.json"}
    assert changes["src/app.js"].added == 2
    assert changes["package.json"].lines == 1


def test_binary_changes_count_zero(git_repo: Path):
    history = GitHistory(git_repo)
    old = history.current_hash()
    (git_repo / "logo.bin").write_bytes(b"\x00\x01\x02\x03")
    git(git_repo, "add", "-A")
    git(git_repo, "commit", "-q", "-m", "binary")
    new = history.current_hash()

    changes = history.changed_files(old, new)

    assert [(c.path, c.lines) for c in changes] == [("logo.bin", 0)]


def test_unknown_revision(git_repo: Path):
    history = GitHistory(git_repo)

    with pytest.raises(HistoryUnavailableError):
        history.changed_files("0" * 40, "HEAD")
    assert not ChangeImpactAnalyzer(history).analyze("0" * 40, "HEAD").available


def test_recent_file_changes(git_repo: Path):
    commit_files(git_repo, {"src/app.js": "v2\n"})
    commit_files(git_repo, {"src/app.js": "v3\n", "src/lib.js": "x\n"})
    history = GitHistory(git_repo)

    counts = history.recent_file_changes(window=30)

    assert counts["src/app.js"] == 3
    assert counts["src/lib.js"] == 1
    assert history.recent_file_changes(window=1) == {"src/app.js": 1, "src/lib.js": 1}


def test_commits_connected(git_repo: Path):
    history = GitHistory(git_repo)
    first = history.current_hash()
    second = commit_files(git_repo, {"b.txt": "b\n"})

    assert history.commits_connected(first, second)
    assert history.commits_connected(second, first)
    assert not history.commits_connected(first, "")


def test_orphan_branch_gives_no_change_signal(git_repo: Path):
    history = GitHistory(git_repo)
    first = history.current_hash()
    git(git_repo, "checkout", "-q", "--orphan", "rewritten")
    orphan = commit_files(git_repo, {"b.txt": "b\n"}, "unrelated root")

    assert not history.commits_connected(first, orphan)
    assert history.changed_files(first, orphan)
    assert not ChangeImpactAnalyzer(history).analyze(first, orphan).available


def test_info(git_repo: Path):
    info = GitHistory(git_repo).info()

    assert info["current_hash"] == git(git_repo, "rev-parse", "HEAD")
    assert "initial" in info["last_commit"]
    assert info["remote_url"] is None
