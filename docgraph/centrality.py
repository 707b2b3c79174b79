"""Structural importance of files in the import graph."""

from __future__ import annotations

import logging
import math
import posixpath
import re
from typing import Dict

from .models import ImportGraph

logger = logging.getLogger(__name__)

ENTRY_POINT_RE = re.compile(r"^(index|main|app|server)", re.IGNORECASE)

ENTRY_POINT_BONUS = 5
UTILITY_BONUS = 3
CONFIG_BONUS = 3

_UTILITY_DIRS = {"utils", "helpers"}


def role_bonus(path: str) -> int:
    """Additive bonus for entry points, utility directories and config files."""
    basename = posixpath.basename(path)
    dirs = {part.lower() for part in posixpath.dirname(path).split("/") if part}
    bonus = 0
    if ENTRY_POINT_RE.match(basename):
        bonus += ENTRY_POINT_BONUS
    if dirs & _UTILITY_DIRS:
        bonus += UTILITY_BONUS
    if "config" in dirs or "config" in basename.lower():
        bonus += CONFIG_BONUS
    return bonus


def raw_score(graph: ImportGraph, path: str) -> int:
    return 2 * graph.in_degree(path) + graph.out_degree(path) + role_bonus(path)


class CentralityScorer:
    """Scores every graph node on a 0-100 scale.

    ``raw = 2 * imported_by + imports + bonus``; the highest raw score in the
    graph maps to 100. When every raw score is 0 all scores are 0.
    """

    def raw_scores(self, graph: ImportGraph) -> Dict[str, int]:
        return {path: raw_score(graph, path) for path in graph.nodes}

    def score(self, graph: ImportGraph) -> Dict[str, int]:
        raw = self.raw_scores(graph)
        if not raw:
            return {}
        max_raw = max(raw.values())
        if max_raw <= 0:
            return {path: 0 for path in raw}
        logger.debug("Centrality: max raw score %d over %d nodes", max_raw, len(raw))
        # half-up, not banker's rounding
        return {path: int(math.floor(value * 100 / max_raw + 0.5)) for path, value in raw.items()}
