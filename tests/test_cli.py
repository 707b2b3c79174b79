"""Integration tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from conftest import commit_files
from docgraph import __version__
from docgraph.cli import app


runner = CliRunner()


def write_doc(directory: Path, text: str = "# Project context\n") -> Path:
    doc = directory / "generated.md"
    doc.write_text(text)
    return doc


class TestGlobalOptions:
    """Tests for top-level options."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])

        assert "check" in result.output
        assert "rank" in result.output


class TestCheckCommand:
    """Tests for 'docgraph check'."""

    def test_first_run_is_full(self, sample_project: Path):
        result = runner.invoke(app, ["check", str(sample_project)])

        assert result.exit_code == 0
        assert "FULL" in result.stdout
        assert "no cached artifact" in result.stdout

    def test_json_output(self, sample_project: Path):
        result = runner.invoke(app, ["check", str(sample_project), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["kind"] == "full"

    def test_nonexistent_path(self):
        result = runner.invoke(app, ["check", "/nonexistent/path"])

        assert result.exit_code != 0

    def test_without_git_every_check_is_full(self, sample_project: Path, temp_dir: Path):
        doc = write_doc(temp_dir)
        runner.invoke(app, ["record", "full", str(doc), "--path", str(sample_project)])

        result = runner.invoke(app, ["check", str(sample_project), "--json"])

        assert json.loads(result.stdout)["kind"] == "full"

    def test_git_round_trip(self, git_repo: Path, temp_dir: Path):
        """record full -> no-op -> small commit -> micro."""
        doc = write_doc(temp_dir)
        recorded = runner.invoke(app, ["record", "full", str(doc), "--path", str(git_repo)])
        assert recorded.exit_code == 0
        assert "Recorded full update" in recorded.stdout

        unchanged = runner.invoke(app, ["check", str(git_repo), "--json"])
        assert json.loads(unchanged.stdout)["kind"] == "no_op"

        commit_files(git_repo, {"src/app.js": "import x from './lib';\nx();\n"})
        changed = json.loads(runner.invoke(app, ["check", str(git_repo), "--json"]).stdout)

        assert changed["kind"] == "micro"
        assert changed["impact"]["file_count"] == 1


class TestRecordAndShow:
    """Tests for 'docgraph record', 'show' and 'status'."""

    def test_invalid_kind(self, sample_project: Path, temp_dir: Path):
        doc = write_doc(temp_dir)
        result = runner.invoke(app, ["record", "no_op", str(doc), "--path", str(sample_project)])

        assert result.exit_code != 0

    def test_show_after_record(self, sample_project: Path, temp_dir: Path):
        doc = write_doc(temp_dir, "# Shop\n\nAll about the shop.\n")
        runner.invoke(app, ["record", "full", str(doc), "--path", str(sample_project)])

        result = runner.invoke(app, ["show", str(sample_project)])

        assert result.exit_code == 0
        assert "All about the shop." in result.stdout
        assert "git-hash" not in result.stdout

    def test_show_without_artifact(self, sample_project: Path):
        result = runner.invoke(app, ["show", str(sample_project)])

        assert result.exit_code == 1

    def test_status(self, sample_project: Path, temp_dir: Path):
        empty = runner.invoke(app, ["status", str(sample_project)])
        assert "No cache metadata yet" in empty.stdout

        runner.invoke(app, ["record", "full", str(write_doc(temp_dir)), "--path", str(sample_project)])
        info = json.loads(runner.invoke(app, ["status", str(sample_project), "--json"]).stdout)

        assert info["has_artifact"] is True
        assert info["artifact_hash"] is None
        assert info["git"] is None
        assert [e["kind"] for e in info["metadata"]["update_history"]] == ["full"]

    def test_clear(self, sample_project: Path, temp_dir: Path):
        runner.invoke(app, ["record", "full", str(write_doc(temp_dir)), "--path", str(sample_project)])

        result = runner.invoke(app, ["clear", str(sample_project)])

        assert result.exit_code == 0
        assert "Cleared" in result.stdout
        assert not (sample_project / ".docgraph" / "context.md").exists()


class TestGraphCommands:
    """Tests for 'docgraph rank' and 'docgraph graph'."""

    def test_rank_json(self, sample_project: Path):
        result = runner.invoke(app, ["rank", str(sample_project), "--top", "3", "--json"])

        assert result.exit_code == 0
        ranked = json.loads(result.stdout)
        assert len(ranked) == 3
        assert ranked[0]["score"] >= ranked[1]["score"] >= ranked[2]["score"]
        assert (sample_project / ".docgraph" / "file-rankings.json").exists()

    def test_rank_table(self, sample_project: Path):
        result = runner.invoke(app, ["rank", str(sample_project)])

        assert result.exit_code == 0
        assert "Top" in result.stdout

    def test_rank_focus(self, sample_project: Path):
        result = runner.invoke(app, ["rank", str(sample_project), "--focus", "api", "--json"])

        paths = [r["path"] for r in json.loads(result.stdout)]
        assert "src/api/routes.js" in paths
        assert "app/models.py" not in paths

    def test_rank_unknown_focus(self, sample_project: Path):
        result = runner.invoke(app, ["rank", str(sample_project), "--focus", "everything"])

        assert result.exit_code != 0

    def test_graph_with_dot_export(self, sample_project: Path, temp_dir: Path):
        dot = temp_dir / "graph.dot"
        result = runner.invoke(app, ["graph", str(sample_project), "--dot", str(dot)])

        assert result.exit_code == 0
        assert "Edges: 9" in result.stdout
        text = dot.read_text()
        assert text.startswith("digraph ImportGraph {")
        assert '"src/index.js" -> "src/config.js";' in text

    def test_settings(self, sample_project: Path):
        result = runner.invoke(app, ["settings", str(sample_project)])

        assert result.exit_code == 0
        assert "[thresholds]" in result.stdout
        assert "full_files = 10" in result.stdout
