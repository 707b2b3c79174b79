"""Tests for change impact analysis."""

import pytest

from conftest import FakeHistory
from docgraph.impact import (
    ChangeImpactAnalyzer,
    count_modules,
    is_api_path,
    is_config_path,
    is_dependency_manifest,
    summarize_changes,
)
from docgraph.models import FileChange


@pytest.mark.parametrize("path,expected", [
    ("src/api/users.js", True),
    ("api/index.py", True),
    ("server/routes/items.ts", True),
    ("src/apis/users.js", False),
    ("src/api.js", False),
    ("docs/rapid/notes.md", False),
])
def test_is_api_path(path, expected):
    assert is_api_path(path) is expected


@pytest.mark.parametrize("path,expected", [
    ("package.json", True),
    ("backend/requirements.txt", True),
    ("go.mod", True),
    ("package.json.bak", False),
    ("src/package.js", False),
])
def test_is_dependency_manifest(path, expected):
    assert is_dependency_manifest(path) is expected


@pytest.mark.parametrize("path,expected", [
    ("webpack.config.js", True),
    (".env.local", True),
    ("src/Settings.py", True),
    ("deploy/docker-compose.yml", True),
    ("src/main.js", False),
])
def test_is_config_path(path, expected):
    assert is_config_path(path) is expected


def test_count_modules_ignores_root_files():
    assert count_modules(["src/a.js", "src/b/c.js", "lib/d.js", "README.md"]) == 2


class TestSummarizeChanges:
    """Tests for aggregating per-file deltas."""

    def test_counts(self):
        impact = summarize_changes([
            FileChange("src/a.js", added=10, deleted=5),
            FileChange("src/b.js", added=1),
            FileChange("lib/c.js", deleted=40),
        ])

        assert impact.available
        assert impact.file_count == 3
        assert impact.total_lines == 56
        assert impact.max_lines_in_one_file == 40
        assert impact.module_count == 2
        assert not impact.has_multiple_modules
        assert not impact.has_api_changes

    def test_flags(self):
        impact = summarize_changes([
            FileChange("src/api/x.js", 1),
            FileChange("lib/y.js", 1),
            FileChange("tools/tsconfig.json", 1),
            FileChange("package.json", 1),
        ])

        assert impact.has_api_changes
        assert impact.has_dep_changes
        assert impact.has_config_changes
        assert impact.module_count == 3
        assert impact.has_multiple_modules

    def test_empty(self):
        impact = summarize_changes([])

        assert impact.file_count == 0
        assert impact.max_lines_in_one_file == 0


class TestChangeImpactAnalyzer:
    """Tests for the history-backed analyzer."""

    def test_reads_history(self):
        history = FakeHistory(changes=[FileChange("src/a.js", 3, 2)])
        impact = ChangeImpactAnalyzer(history).analyze("abc123", "def456")

        assert history.diff_calls == [("abc123", "def456")]
        assert impact.available
        assert impact.total_lines == 5

    @pytest.mark.parametrize("prev,cur", [(None, "def456"), ("abc123", None), ("", "def456")])
    def test_missing_revision(self, prev, cur):
        history = FakeHistory(changes=[FileChange("src/a.js", 3)])
        impact = ChangeImpactAnalyzer(history).analyze(prev, cur)

        assert not impact.available
        assert history.diff_calls == []

    def test_history_not_available(self):
        """No repository: zero counts and every flag cleared."""
        impact = ChangeImpactAnalyzer(FakeHistory(available=False)).analyze("abc123", "def456")

        assert not impact.available
        assert impact.file_count == 0
        assert impact.total_lines == 0
        assert not (impact.has_api_changes or impact.has_dep_changes
                    or impact.has_config_changes or impact.has_multiple_modules)

    def test_diff_failure(self):
        impact = ChangeImpactAnalyzer(FakeHistory(fail_diff=True)).analyze("gone", "def456")

        assert not impact.available

    def test_unrelated_revisions_are_not_diffed(self):
        """A rewritten history leaves no change signal instead of a misleading diff."""
        history = FakeHistory(changes=[FileChange("src/a.js", 3)], connected=False)
        impact = ChangeImpactAnalyzer(history).analyze("abc123", "def456")

        assert not impact.available
        assert history.diff_calls == []
