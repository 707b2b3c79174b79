"""Summarize how much, and what kind of, change happened between two revisions."""

from __future__ import annotations

import logging
import posixpath
from typing import Iterable, List, Optional

from .config_manager import ImpactThresholds
from .errors import HistoryUnavailableError
from .models import ChangeImpact, FileChange
from .vcs import HistoryProvider

logger = logging.getLogger(__name__)

API_SEGMENTS = ("api", "routes")

DEPENDENCY_MANIFESTS = {
    "package.json",
    "requirements.txt",
    "pyproject.toml",
    "setup.py",
    "Pipfile",
    "go.mod",
    "Cargo.toml",
    "Gemfile",
    "composer.json",
}

CONFIG_PATTERNS = (
    "config", ".config", "conf",
    "webpack", "vite", "rollup", "babel",
    "tsconfig", "jsconfig", ".eslintrc", ".prettierrc",
    "docker", "k8s", "kubernetes",
    ".env", "settings",
)


def is_api_path(path: str) -> bool:
    wrapped = "/" + path
    return any(f"/{segment}/" in wrapped for segment in API_SEGMENTS)


def is_dependency_manifest(path: str) -> bool:
    return posixpath.basename(path) in DEPENDENCY_MANIFESTS


def is_config_path(path: str) -> bool:
    lowered = path.lower()
    return any(pattern in lowered for pattern in CONFIG_PATTERNS)


def count_modules(paths: Iterable[str]) -> int:
    """Distinct top-level directories; root-level files do not count."""
    modules = set()
    for path in paths:
        parts = path.split("/")
        if len(parts) > 1 and parts[0]:
            modules.add(parts[0])
    return len(modules)


def summarize_changes(changes: List[FileChange], many_modules: int = 2) -> ChangeImpact:
    """Build a :class:`ChangeImpact` from per-file line deltas."""
    paths = [c.path for c in changes]
    module_count = count_modules(paths)
    return ChangeImpact(
        files=list(changes),
        file_count=len(changes),
        total_lines=sum(c.lines for c in changes),
        max_lines_in_one_file=max((c.lines for c in changes), default=0),
        module_count=module_count,
        has_api_changes=any(is_api_path(p) for p in paths),
        has_dep_changes=any(is_dependency_manifest(p) for p in paths),
        has_config_changes=any(is_config_path(p) for p in paths),
        has_multiple_modules=module_count > many_modules,
    )


class ChangeImpactAnalyzer:
    """Reads revision history and produces a :class:`ChangeImpact`.

    When history cannot be read (not a repository, unknown revision, git
    missing) the result is :meth:`ChangeImpact.unavailable`; the decision
    engine treats that as "no signal" and rebuilds.
    """

    def __init__(self, history: HistoryProvider, thresholds: Optional[ImpactThresholds] = None) -> None:
        self.history = history
        self.thresholds = thresholds or ImpactThresholds()

    def analyze(self, previous_rev: Optional[str], current_rev: Optional[str]) -> ChangeImpact:
        if not previous_rev or not current_rev:
            logger.info("Missing revision (previous=%s, current=%s); no change signal", previous_rev, current_rev)
            return ChangeImpact.unavailable()
        try:
            if not self.history.is_available():
                logger.info("Revision history not available; no change signal")
                return ChangeImpact.unavailable()
            if not self.history.commits_connected(previous_rev, current_rev):
                logger.info("%s and %s share no ancestry; no change signal", previous_rev[:8], current_rev[:8])
                return ChangeImpact.unavailable()
            changes = self.history.changed_files(previous_rev, current_rev)
        except HistoryUnavailableError as exc:
            logger.warning("Could not diff %s..%s: %s", previous_rev, current_rev, exc)
            return ChangeImpact.unavailable()

        impact = summarize_changes(changes, many_modules=self.thresholds.many_modules)
        logger.info(
            "Change impact %s..%s: %d files, %d lines (max %d in one file), %d modules",
            previous_rev[:8], current_rev[:8], impact.file_count, impact.total_lines,
            impact.max_lines_in_one_file, impact.module_count,
        )
        return impact
