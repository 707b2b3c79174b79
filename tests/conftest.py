"""Pytest configuration and fixtures for docgraph tests."""

import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Optional

import pytest

from docgraph.cache_store import CacheStore
from docgraph.errors import HistoryUnavailableError
from docgraph.models import FileChange, FileIndex, FileRecord
from docgraph.vcs import HistoryProvider


class FakeHistory(HistoryProvider):
    """In-memory revision history for decision and impact tests."""

    def __init__(
        self,
        current: Optional[str] = "abc123",
        changes: Optional[List[FileChange]] = None,
        recent: Optional[Dict[str, int]] = None,
        available: bool = True,
        fail_diff: bool = False,
        connected: bool = True,
    ):
        self.current = current
        self.changes = changes or []
        self.recent = recent or {}
        self.available = available
        self.fail_diff = fail_diff
        self.connected = connected
        self.diff_calls = []

    def is_available(self) -> bool:
        return self.available

    def current_hash(self) -> str:
        if not self.available or self.current is None:
            raise HistoryUnavailableError("no history")
        return self.current

    def changed_files(self, old_rev: str, new_rev: str) -> List[FileChange]:
        self.diff_calls.append((old_rev, new_rev))
        if self.fail_diff:
            raise HistoryUnavailableError(f"bad revision {old_rev}")
        return list(self.changes)

    def commits_connected(self, old_rev: str, new_rev: str) -> bool:
        return self.connected

    def recent_file_changes(self, window: int = 30) -> Dict[str, int]:
        if not self.available:
            raise HistoryUnavailableError("no history")
        return dict(self.recent)


def make_index(files: Dict[str, List[str]], sizes: Optional[Dict[str, int]] = None) -> FileIndex:
    """Build a FileIndex from ``{path: [raw imports]}``."""
    sizes = sizes or {}
    index = FileIndex()
    for path, imports in files.items():
        ext = Path(path).suffix.lower()
        index.add(FileRecord(path=path, extension=ext, size=sizes.get(path, 100), mtime=0.0, imports=tuple(imports)))
    return index


def git(repo: Path, *args: str) -> str:
    return subprocess.run(
        ["git", *args], cwd=str(repo), check=True, capture_output=True, text=True,
    ).stdout.strip()


def commit_files(repo: Path, files: Dict[str, str], message: str = "update") -> str:
    """Write *files* into *repo*, commit them and return the new HEAD hash."""
    for rel, content in files.items():
        target = repo / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    git(repo, "add", "--", *files)
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture(autouse=True)
def _isolated_user_config(tmp_path_factory, monkeypatch):
    """Point the user-level config at an empty location for every test."""
    home = tmp_path_factory.mktemp("docgraph_home")
    monkeypatch.setattr("docgraph.config.BASE_DIR", home)
    monkeypatch.setattr("docgraph.config.USER_CONFIG_FILE", home / "config.toml")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_project(temp_dir: Path, sample_project_path: Path) -> Path:
    """Writable copy of the sample project (the cache lives inside it)."""
    target = temp_dir / "sample_project"
    shutil.copytree(sample_project_path, target)
    return target


@pytest.fixture
def store(temp_dir: Path) -> CacheStore:
    project = temp_dir / "project"
    project.mkdir()
    return CacheStore(project)


@pytest.fixture
def git_repo(temp_dir: Path) -> Path:
    """A fresh git repository with one commit."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = temp_dir / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "config", "user.email", "tests@example.com")
    git(repo, "config", "user.name", "docgraph tests")
    git(repo, "config", "commit.gpgsign", "false")
    commit_files(repo, {"README.md": "# repo\n", "src/app.js": "import x from './lib';\n"}, "initial")
    return repo
