"""Typer-based CLI for docgraph cache checks and smart file selection."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import toml
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config
from .cache_store import strip_hash_trailer
from .config_manager import settings_as_dict
from .graph_export import export_dot
from .models import DECISION_KINDS, NO_OP, UpdateDecision
from .orchestrator import DocgraphOrchestrator

console = Console()

app = typer.Typer(
    help="📚 docgraph: documentation cache invalidation & smart file selection.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

_DECISION_STYLE = {"no_op": "green", "micro": "cyan", "partial": "yellow", "full": "red"}


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logger = logging.getLogger("docgraph")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=debug, markup=False))
    logger.setLevel(level)
    logger.propagate = False


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"docgraph v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", "-V", help="Show version and exit.", callback=version_callback, is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress (INFO)."),
    debug: bool = typer.Option(False, "--debug", help="Log everything (DEBUG)."),
):
    """docgraph: decide when generated docs are stale and which files matter."""
    configure_logging(verbose=verbose, debug=debug)


def _project_arg() -> Path:
    return typer.Argument(Path("."), exists=True, file_okay=False, help="Project directory.")


# ===================================================================
# Cache decisions
# ===================================================================

@app.command("check")
def check(
    project_path: Path = _project_arg(),
    force: bool = typer.Option(False, "--force", "-f", help="Always decide on a full rebuild."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
):
    """Decide whether the cached document needs a rebuild."""
    decision = DocgraphOrchestrator(project_path).check(force=force)
    if as_json:
        typer.echo(json.dumps(decision.to_dict(), indent=2))
        return

    style = _DECISION_STYLE.get(decision.kind, "white")
    console.print(f"Decision: [bold {style}]{decision.kind.upper()}[/bold {style}] ({decision.reason})")
    if decision.impact is not None and decision.impact.available:
        impact = decision.impact
        console.print(
            f"Files: {impact.file_count} | Lines: {impact.total_lines} | "
            f"Max in one file: {impact.max_lines_in_one_file} | Modules: {impact.module_count}"
        )
        flags = [
            name for name, on in (
                ("api", impact.has_api_changes),
                ("dependencies", impact.has_dep_changes),
                ("config", impact.has_config_changes),
                ("multi-module", impact.has_multiple_modules),
            ) if on
        ]
        if flags:
            console.print(f"Flags: {', '.join(flags)}")


@app.command("impact")
def impact(
    old_rev: str = typer.Argument(..., help="Previous revision."),
    new_rev: Optional[str] = typer.Argument(None, help="Current revision (defaults to HEAD)."),
    project_path: Path = typer.Option(Path("."), "--path", "-p", exists=True, file_okay=False),
):
    """Show the raw change impact between two revisions."""
    result = DocgraphOrchestrator(project_path).impact(old_rev, new_rev)
    typer.echo(json.dumps(result.to_dict(), indent=2))


@app.command("record")
def record(
    kind: str = typer.Argument(..., help="What was regenerated: micro, partial or full."),
    artifact_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Generated document."),
    project_path: Path = typer.Option(Path("."), "--path", "-p", exists=True, file_okay=False),
):
    """Store a generated document and advance the cache metadata."""
    if kind not in DECISION_KINDS or kind == NO_OP:
        raise typer.BadParameter(f"kind must be one of micro, partial, full (got '{kind}')")

    orchestrator = DocgraphOrchestrator(project_path)
    checked = orchestrator.check()
    decision = UpdateDecision(kind, impact=checked.impact, reason="recorded", current_hash=checked.current_hash)
    metadata = orchestrator.record(decision, artifact_file.read_text(encoding="utf-8"))

    typer.echo(f"Recorded {kind} update for '{orchestrator.project_dir}'.")
    if metadata is not None:
        typer.echo(f"Revision: {metadata.last_git_hash or 'n/a'}")


@app.command("status")
def status(
    project_path: Path = _project_arg(),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
):
    """Show cache metadata, git info and recent update history."""
    info = DocgraphOrchestrator(project_path).status()
    if as_json:
        typer.echo(json.dumps(info, indent=2))
        return

    metadata = info["metadata"]
    console.print(f"Cache: {info['cache_dir']}")
    console.print(f"Artifact cached: {'yes' if info['has_artifact'] else 'no'}")
    if info["artifact_hash"]:
        console.print(f"Artifact revision: {info['artifact_hash']}")
    if info["git"]:
        git = info["git"]
        console.print(f"Git: {git.get('branch') or '?'} @ {git.get('last_commit') or '?'}")
    if not metadata:
        console.print("[yellow]No cache metadata yet.[/yellow]")
        return
    console.print(f"Last revision: {metadata['last_git_hash'] or 'n/a'}")
    console.print(f"Last update: {metadata['last_update']}")
    console.print(f"Last full analysis: {metadata['last_full_analysis'] or 'never'}")

    history = metadata["update_history"]
    if history:
        table = Table(title="Update history")
        table.add_column("When")
        table.add_column("Kind")
        table.add_column("Files", justify="right")
        table.add_column("Lines", justify="right")
        for entry in history[-10:]:
            table.add_row(entry["timestamp"], entry["kind"], str(entry["file_count"]), str(entry["total_lines"]))
        console.print(table)


@app.command("show")
def show(
    project_path: Path = _project_arg(),
    max_age: float = typer.Option(config.ARTIFACT_MAX_AGE_SECONDS, "--max-age", help="Maximum artifact age in seconds."),
    allow_stale: bool = typer.Option(False, "--stale", help="Print the artifact whatever its age."),
):
    """Print the cached document if it is fresh enough."""
    store = DocgraphOrchestrator(project_path).store
    content = store.get_artifact_with_fallback(max_age_seconds=max_age, allow_stale=allow_stale)
    if content is None:
        typer.echo("No fresh cached document. Run 'docgraph check' and regenerate.", err=True)
        raise typer.Exit(code=1)
    typer.echo(strip_hash_trailer(content))


@app.command("clear")
def clear(project_path: Path = _project_arg()):
    """Delete cached documents, metadata and change logs."""
    removed = DocgraphOrchestrator(project_path).store.clear()
    typer.echo(f"Cleared {removed} cached file(s).")


# ===================================================================
# Graph & ranking
# ===================================================================

@app.command("rank")
def rank(
    project_path: Path = _project_arg(),
    top_k: Optional[int] = typer.Option(None, "--top", "-k", min=1, help="Number of files to select."),
    focus: Optional[str] = typer.Option(None, "--focus", help="Restrict to a focus area (api, frontend, ...)."),
    previews: bool = typer.Option(False, "--previews", help="Print content previews."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
):
    """Rank files by relevance (smart file selection)."""
    try:
        orchestrator = DocgraphOrchestrator(project_path, focus=focus)
    except ValueError as exc:
        raise typer.BadParameter(str(exc))
    selected = orchestrator.select_files(k=top_k)

    if as_json:
        typer.echo(json.dumps([r.to_dict() for r in selected], indent=2))
        return
    if not selected:
        typer.echo("No files found.")
        return

    table = Table(title=f"Top {len(selected)} files")
    table.add_column("#", justify="right")
    table.add_column("Path")
    table.add_column("Score", justify="right")
    table.add_column("Lines", justify="right")
    for i, item in enumerate(selected, 1):
        table.add_row(str(i), item.path, f"{item.score:.2f}", str(item.total_lines))
    console.print(table)

    if previews:
        for item in selected:
            suffix = " (truncated)" if item.truncated else ""
            console.rule(f"{item.path}{suffix}")
            console.print(item.content_preview, markup=False, highlight=False)


@app.command("graph")
def graph(
    project_path: Path = _project_arg(),
    top: int = typer.Option(15, "--top", "-n", min=1, help="Rows to show."),
    dot: Optional[Path] = typer.Option(None, "--dot", help="Write the import graph as Graphviz DOT."),
    focus: str = typer.Option("", "--focus", help="Only export edges touching paths containing this text."),
):
    """Show the most central files of the import graph."""
    analysis = DocgraphOrchestrator(project_path).analyze()
    g, centrality = analysis.graph, analysis.centrality

    typer.echo(f"Files: {len(analysis.file_index)} | Nodes: {len(g)} | Edges: {g.edge_count}")
    ordered = sorted(centrality.items(), key=lambda item: (-item[1], item[0]))[:top]
    table = Table(title="Centrality")
    table.add_column("Path")
    table.add_column("Score", justify="right")
    table.add_column("Imported by", justify="right")
    table.add_column("Imports", justify="right")
    for path, score in ordered:
        table.add_row(path, str(score), str(g.in_degree(path)), str(g.out_degree(path)))
    console.print(table)

    if dot is not None:
        export_dot(g, dot, centrality=centrality, focus=focus)
        typer.echo(f"Wrote {dot}")


@app.command("settings")
def settings(project_path: Path = _project_arg()):
    """Print the effective thresholds and ranking weights."""
    orchestrator = DocgraphOrchestrator(project_path)
    typer.echo(toml.dumps(settings_as_dict(orchestrator.settings)))


if __name__ == "__main__":
    app()
