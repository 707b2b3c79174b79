"""Smart file selection: rank files by how much they matter to a summary.

    score = 50 * recency + 10 * fan_in + 5 * complexity + 8 * centrality + 7 * type

Scoring is a pure function of the index, the graph, centrality and the
recent-change counts. File content is read only for the final top-k, to
build previews.
"""

from __future__ import annotations

import logging
import posixpath
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .config_manager import RankingWeights
from .models import FileIndex, FileRecord, ImportGraph, RankedFile

logger = logging.getLogger(__name__)

BUILD_CONFIG_RE = re.compile(r"^(package|tsconfig|webpack|vite|rollup|babel)")
ENTRY_POINT_RE = re.compile(r"^(index|main|app)")

SOURCE_TYPE_EXTENSIONS = {".js", ".ts", ".jsx", ".tsx", ".py", ".go", ".java"}
DATA_EXTENSIONS = {".json", ".yml", ".yaml", ".toml"}
DOC_EXTENSIONS = {".md", ".mdx"}


def file_type_score(path: str) -> float:
    name = posixpath.basename(path).lower()
    ext = posixpath.splitext(name)[1]
    if BUILD_CONFIG_RE.match(name):
        return 0.9
    if ENTRY_POINT_RE.match(name):
        return 0.8
    if ext in SOURCE_TYPE_EXTENSIONS:
        return 0.6
    if ext in DATA_EXTENSIONS:
        return 0.5
    if ext in DOC_EXTENSIONS:
        return 0.3
    return 0.1


def normalize_recency(counts: Optional[Mapping[str, int]]) -> Dict[str, float]:
    """Scale change counts to [0, 1] by the busiest file in the window."""
    if not counts:
        return {}
    peak = max(counts.values())
    if peak <= 0:
        return {}
    return {path: count / peak for path, count in counts.items()}


def complexity_factor(size: int, scale: int = 10000) -> float:
    return min(size / scale, 1.0) if scale > 0 else 0.0


class RelevanceRanker:
    """Weighted ranking over every file in a :class:`FileIndex`."""

    def __init__(self, weights: Optional[RankingWeights] = None, root: Optional[Path] = None) -> None:
        self.weights = weights or RankingWeights()
        self.root = Path(root) if root is not None else None

    def score_file(
        self,
        record: FileRecord,
        graph: ImportGraph,
        centrality: Mapping[str, int],
        recency: Mapping[str, float],
    ) -> float:
        w = self.weights
        return (
            w.recency * recency.get(record.path, 0.0)
            + w.fan_in * graph.fan_in(record.path)
            + w.complexity * complexity_factor(record.size, w.complexity_size)
            + w.centrality * (centrality.get(record.path, 0) / 100.0)
            + w.file_type * file_type_score(record.path)
        )

    def score_all(
        self,
        file_index: FileIndex,
        graph: ImportGraph,
        centrality: Mapping[str, int],
        recent_changes: Optional[Mapping[str, int]] = None,
    ) -> Dict[str, float]:
        recency = normalize_recency(recent_changes)
        scores: Dict[str, float] = {}
        for record in file_index:
            try:
                scores[record.path] = self.score_file(record, graph, centrality, recency)
            except Exception as exc:
                logger.warning("Scoring failed for %s, using 0: %s", record.path, exc)
                scores[record.path] = 0.0
        return scores

    def rank(
        self,
        file_index: FileIndex,
        graph: ImportGraph,
        centrality: Mapping[str, int],
        recent_changes: Optional[Mapping[str, int]] = None,
        k: Optional[int] = None,
    ) -> List[Tuple[str, float]]:
        """Top-*k* ``(path, score)`` pairs, highest first, ties by path."""
        k = self.weights.top_k if k is None else k
        scores = self.score_all(file_index, graph, centrality, recent_changes)
        ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return ordered[:max(k, 0)]

    # ------------------------------------------------------------------
    # Previews
    # ------------------------------------------------------------------

    def preview(self, path: str, score: float) -> RankedFile:
        if self.root is None:
            return RankedFile(path=path, score=score)
        try:
            content = (self.root / path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.debug("Could not read %s: %s", path, exc)
            return RankedFile(path=path, score=score)
        lines = content.split("\n")
        limit = self.weights.preview_lines
        return RankedFile(
            path=path,
            score=score,
            content_preview="\n".join(lines[:limit]),
            truncated=len(lines) > limit,
            total_lines=len(lines),
        )

    def select(
        self,
        file_index: FileIndex,
        graph: ImportGraph,
        centrality: Mapping[str, int],
        recent_changes: Optional[Mapping[str, int]] = None,
        k: Optional[int] = None,
        with_previews: bool = True,
    ) -> List[RankedFile]:
        ranked = self.rank(file_index, graph, centrality, recent_changes, k)
        if not with_previews:
            return [RankedFile(path=p, score=s) for p, s in ranked]
        selected = [self.preview(p, s) for p, s in ranked]
        logger.info("Selected %d most relevant files", len(selected))
        for i, item in enumerate(selected, 1):
            logger.debug("  %d. %s (score: %.2f)", i, item.path, item.score)
        return selected
