"""Graphviz DOT export of the import graph."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from .models import ImportGraph


def render_dot(graph: ImportGraph, centrality: Optional[Mapping[str, int]] = None, focus: str = "") -> str:
    centrality = centrality or {}
    nodes, edges = _focused_subgraph(graph, focus)

    lines = ["digraph ImportGraph {"]
    lines.append("  rankdir=LR;")
    for path in nodes:
        label = f"{path}\\ncentrality {centrality.get(path, 0)}"
        lines.append(f'  "{_esc(path)}" [label="{_esc(label)}"];')
    for src, dst in edges:
        lines.append(f'  "{_esc(src)}" -> "{_esc(dst)}";')
    lines.append("}")
    return "\n".join(lines)


def export_dot(
    graph: ImportGraph,
    output_file: Path,
    centrality: Optional[Mapping[str, int]] = None,
    focus: str = "",
) -> None:
    output_file.write_text(render_dot(graph, centrality, focus), encoding="utf-8")


def _focused_subgraph(graph: ImportGraph, focus: str) -> Tuple[List[str], List[Tuple[str, str]]]:
    edges = list(graph.edges())
    if not focus:
        return list(graph.nodes), edges

    focus_paths = {p for p in graph.nodes if focus in p}
    if not focus_paths:
        return list(graph.nodes), edges

    edge_subset = [(s, d) for s, d in edges if s in focus_paths or d in focus_paths]
    node_subset = set(focus_paths)
    for src, dst in edge_subset:
        node_subset.add(src)
        node_subset.add(dst)
    return sorted(node_subset), edge_subset


def _esc(text: str) -> str:
    return text.replace('"', '\\"')
