"""Coordinates indexing, graph scoring, ranking and cache decisions for one project."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .cache_store import CacheStore, read_hash_trailer
from .centrality import CentralityScorer
from .config_manager import Settings, load_settings
from .decision import CacheDecisionEngine
from .errors import HistoryUnavailableError
from .impact import ChangeImpactAnalyzer
from .import_graph import ImportGraphBuilder
from .indexer import AnalysisCache, ProjectIndexer
from .models import CacheMetadata, ChangeImpact, FileIndex, ImportGraph, RankedFile, UpdateDecision
from .ranker import RelevanceRanker
from .vcs import GitHistory, HistoryProvider

logger = logging.getLogger(__name__)


@dataclass
class ProjectAnalysis:
    file_index: FileIndex
    graph: ImportGraph
    centrality: Dict[str, int]


class DocgraphOrchestrator:
    """One analysis run over *project_dir*.

    The analysis cache is owned by the instance, so repeated calls within a
    run reuse file analyses and nothing leaks across runs.
    """

    def __init__(
        self,
        project_dir: Path,
        settings: Optional[Settings] = None,
        history: Optional[HistoryProvider] = None,
        store: Optional[CacheStore] = None,
        focus: Optional[str] = None,
        include_patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
    ) -> None:
        self.project_dir = Path(project_dir).resolve()
        self.settings = settings or load_settings(self.project_dir)
        self.history = history or GitHistory(self.project_dir)
        self.store = store or CacheStore(self.project_dir)
        self.analysis_cache = AnalysisCache()
        self.indexer = ProjectIndexer(
            self.project_dir,
            cache=self.analysis_cache,
            focus=focus,
            include_patterns=include_patterns,
            exclude_patterns=exclude_patterns,
        )
        self.graph_builder = ImportGraphBuilder()
        self.scorer = CentralityScorer()
        self.ranker = RelevanceRanker(self.settings.ranking, root=self.project_dir)
        self.engine = CacheDecisionEngine(self.store, self.history, self.settings.thresholds)
        self._analysis: Optional[ProjectAnalysis] = None

    # ------------------------------------------------------------------
    # Graph side
    # ------------------------------------------------------------------

    def analyze(self, refresh: bool = False) -> ProjectAnalysis:
        if self._analysis is None or refresh:
            file_index = self.indexer.index()
            graph = self.graph_builder.build(file_index)
            centrality = self.scorer.score(graph)
            self._analysis = ProjectAnalysis(file_index, graph, centrality)
        return self._analysis

    def recent_changes(self) -> Dict[str, int]:
        """Per-file change counts over the history window; empty without git."""
        try:
            if not self.history.is_available():
                return {}
            return self.history.recent_file_changes(self.settings.ranking.history_window)
        except HistoryUnavailableError as exc:
            logger.info("Git history not available for smart file selection: %s", exc)
            return {}

    def select_files(self, k: Optional[int] = None, with_previews: bool = True, save: bool = True) -> List[RankedFile]:
        analysis = self.analyze()
        selected = self.ranker.select(
            analysis.file_index,
            analysis.graph,
            analysis.centrality,
            self.recent_changes(),
            k=k,
            with_previews=with_previews,
        )
        if save:
            self.store.save_rankings([{"path": r.path, "score": r.score} for r in selected])
        return selected

    # ------------------------------------------------------------------
    # Cache side
    # ------------------------------------------------------------------

    def check(self, force: bool = False) -> UpdateDecision:
        return self.engine.decide(force=force)

    def impact(self, old_rev: str, new_rev: Optional[str] = None) -> ChangeImpact:
        if new_rev is None:
            try:
                new_rev = self.history.current_hash()
            except HistoryUnavailableError:
                return ChangeImpact.unavailable()
        return ChangeImpactAnalyzer(self.history, self.settings.thresholds).analyze(old_rev, new_rev)

    def record(self, decision: UpdateDecision, artifact: Optional[str] = None) -> Optional[CacheMetadata]:
        return self.engine.commit(decision, artifact)

    def status(self) -> Dict[str, Any]:
        metadata = self.store.load_metadata()
        artifact = self.store.load_artifact()
        git_info = self.history.info() if isinstance(self.history, GitHistory) else None
        return {
            "project_dir": str(self.project_dir),
            "cache_dir": str(self.store.cache_dir),
            "has_artifact": artifact is not None,
            # informational only; decisions read the revision from metadata
            "artifact_hash": read_hash_trailer(artifact) if artifact else None,
            "metadata": metadata.to_dict() if metadata else None,
            "accumulated_changes": self.store.load_accumulated_changes(),
            "git": git_info,
        }
