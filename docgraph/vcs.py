"""Git-backed revision history used for change impact and recency signals."""

from __future__ import annotations

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from .errors import HistoryUnavailableError
from .models import FileChange

logger = logging.getLogger(__name__)


class HistoryProvider(ABC):
    """Revision-history collaborator consumed by the impact analyzer and ranker.

    Every method raises :class:`HistoryUnavailableError` when history cannot
    be read; callers decide how to degrade.
    """

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    def current_hash(self) -> str:
        ...

    @abstractmethod
    def changed_files(self, old_rev: str, new_rev: str) -> List[FileChange]:
        ...

    @abstractmethod
    def recent_file_changes(self, window: int = 30) -> Dict[str, int]:
        """Count how often each path appears in the last *window* commits."""
        ...

    def commits_connected(self, old_rev: str, new_rev: str) -> bool:
        """Whether a diff between the two revisions describes one line of history."""
        return True


def _parse_count(value: str) -> int:
    # numstat prints "-" for binary files
    try:
        return int(value)
    except ValueError:
        return 0


class GitHistory(HistoryProvider):
    """Runs ``git`` synchronously inside *project_dir*."""

    def __init__(self, project_dir: Path, git_executable: str = "git") -> None:
        self.project_dir = Path(project_dir)
        self.git_executable = git_executable
        self._available: Optional[bool] = None

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _run(self, *args: str) -> str:
        cmd = [self.git_executable, *args]
        logger.debug("Running %s in %s", " ".join(cmd), self.project_dir)
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(self.project_dir),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise HistoryUnavailableError(f"cannot run git: {exc}") from exc
        if proc.returncode != 0:
            raise HistoryUnavailableError(
                f"Command failed: {' '.join(cmd)}: {proc.stderr.strip()}"
            )
        return proc.stdout

    def _require_repo(self) -> None:
        if not self.is_available():
            raise HistoryUnavailableError(f"{self.project_dir} is not a git repository")

    # ------------------------------------------------------------------
    # HistoryProvider
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        if self._available is None:
            if shutil.which(self.git_executable) is None or not self.project_dir.is_dir():
                self._available = False
            else:
                try:
                    self._run("rev-parse", "--git-dir")
                    self._available = True
                except HistoryUnavailableError:
                    self._available = False
        return self._available

    def current_hash(self) -> str:
        self._require_repo()
        return self._run("rev-parse", "HEAD").strip()

    def changed_files(self, old_rev: str, new_rev: str) -> List[FileChange]:
        """Touched files between two revisions with added/deleted line counts.

        Paths listed by ``--name-only`` but missing from ``--numstat`` are
        reported with zero counts so the touched-file list stays complete.
        """
        self._require_repo()
        span = f"{old_rev}..{new_rev}"
        numstat = self._run("diff", "--no-renames", "--numstat", span)
        names = self._run("diff", "--no-renames", "--name-only", span)

        changes: Dict[str, FileChange] = {}
        for line in numstat.splitlines():
            parts = line.split("\t", 2)
            if len(parts) != 3:
                continue
            added, deleted, path = parts
            changes[path] = FileChange(path=path, added=_parse_count(added), deleted=_parse_count(deleted))
        for path in names.splitlines():
            path = path.strip()
            if path and path not in changes:
                changes[path] = FileChange(path=path)
        return list(changes.values())

    def recent_file_changes(self, window: int = 30) -> Dict[str, int]:
        self._require_repo()
        # --relative keeps paths aligned with the project-relative file index
        output = self._run("log", "--relative", "--name-only", "--pretty=format:", f"-{int(window)}")
        counts: Dict[str, int] = {}
        for line in output.splitlines():
            path = line.strip()
            if path:
                counts[path] = counts.get(path, 0) + 1
        return counts

    # ------------------------------------------------------------------
    # Extras
    # ------------------------------------------------------------------

    def commits_connected(self, old_rev: str, new_rev: str) -> bool:
        """True when one revision is an ancestor of the other."""
        if not self.is_available() or not old_rev or not new_rev:
            return False
        for ancestor, descendant in ((old_rev, new_rev), (new_rev, old_rev)):
            try:
                self._run("merge-base", "--is-ancestor", ancestor, descendant)
                return True
            except HistoryUnavailableError:
                continue
        return False

    def _optional(self, *args: str) -> Optional[str]:
        try:
            return self._run(*args).strip() or None
        except HistoryUnavailableError:
            return None

    def branch_name(self) -> Optional[str]:
        return self._optional("branch", "--show-current") if self.is_available() else None

    def remote_url(self) -> Optional[str]:
        return self._optional("config", "--get", "remote.origin.url") if self.is_available() else None

    def last_commit(self) -> Optional[str]:
        return self._optional("log", "-1", "--pretty=format:%h - %s (%cr)") if self.is_available() else None

    def info(self) -> Optional[Dict[str, Optional[str]]]:
        if not self.is_available():
            return None
        return {
            "branch": self.branch_name(),
            "remote_url": self.remote_url(),
            "last_commit": self.last_commit(),
            "current_hash": self._optional("rev-parse", "HEAD"),
        }
