"""Cache invalidation: pick no-op, micro, partial or full regeneration."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .cache_store import CacheStore, with_hash_trailer
from .config_manager import ImpactThresholds
from .errors import HistoryUnavailableError
from .impact import ChangeImpactAnalyzer
from .models import (
    FULL,
    MICRO,
    NO_OP,
    PARTIAL,
    CacheMetadata,
    ChangeImpact,
    DecisionKind,
    UpdateDecision,
)
from .vcs import HistoryProvider

logger = logging.getLogger(__name__)


def full_rebuild_reason(impact: ChangeImpact, t: ImpactThresholds) -> Optional[str]:
    """Why *impact* needs a full rebuild, or ``None``.

    Cross-cutting signals are checked before any size threshold lets a
    change through as small.
    """
    if impact.file_count > t.full_files and impact.total_lines > t.full_lines:
        return f"{impact.file_count} files and {impact.total_lines} lines changed"
    if impact.has_api_changes and impact.file_count > t.api_files:
        return f"API surface touched across {impact.file_count} files"
    if impact.has_dep_changes:
        return "dependency manifest changed"
    if impact.has_multiple_modules and impact.total_lines > t.multi_module_lines:
        return f"{impact.module_count} modules touched with {impact.total_lines} lines"
    if impact.max_lines_in_one_file > t.max_single_file_lines:
        return f"{impact.max_lines_in_one_file} lines changed in a single file"
    return None


def partial_update_reason(impact: ChangeImpact, t: ImpactThresholds) -> Optional[str]:
    if 1 < impact.file_count <= t.partial_files:
        return f"{impact.file_count} files changed"
    if impact.file_count == 1 and impact.max_lines_in_one_file > t.partial_single_file_lines:
        return f"{impact.max_lines_in_one_file} lines changed in one file"
    if impact.has_config_changes:
        return "configuration changed"
    return None


def classify_impact(impact: ChangeImpact, thresholds: Optional[ImpactThresholds] = None) -> Tuple[DecisionKind, str]:
    """Map an impact to a strategy; first matching rule wins."""
    t = thresholds or ImpactThresholds()
    if not impact.available:
        return FULL, "no change signal available"
    reason = full_rebuild_reason(impact, t)
    if reason:
        return FULL, reason
    reason = partial_update_reason(impact, t)
    if reason:
        return PARTIAL, reason
    return MICRO, "small localized change"


class CacheDecisionEngine:
    """Decides, once per invocation, what to do with the cached artifact.

    ``decide`` never raises: every failure path degrades to ``FULL``.
    ``commit`` records a decision after the caller has acted on it.
    """

    def __init__(
        self,
        store: CacheStore,
        history: HistoryProvider,
        thresholds: Optional[ImpactThresholds] = None,
        analyzer: Optional[ChangeImpactAnalyzer] = None,
    ) -> None:
        self.store = store
        self.history = history
        self.thresholds = thresholds or ImpactThresholds()
        self.analyzer = analyzer or ChangeImpactAnalyzer(history, self.thresholds)

    def _current_hash(self) -> Optional[str]:
        try:
            if not self.history.is_available():
                return None
            return self.history.current_hash()
        except HistoryUnavailableError as exc:
            logger.warning("Cannot read current revision: %s", exc)
            return None

    def decide(self, force: bool = False) -> UpdateDecision:
        current = self._current_hash()

        if force:
            return self._log(UpdateDecision(FULL, reason="force flag set", current_hash=current))
        if self.store.load_artifact() is None:
            return self._log(UpdateDecision(FULL, reason="no cached artifact", current_hash=current))

        metadata = self.store.load_metadata()
        stored = metadata.last_git_hash if metadata else None
        if not stored:
            return self._log(UpdateDecision(FULL, reason="no stored revision", current_hash=current))
        if current is not None and current == stored:
            return self._log(UpdateDecision(NO_OP, reason="revision unchanged", current_hash=current))

        try:
            impact = self.analyzer.analyze(stored, current)
            kind, reason = classify_impact(impact, self.thresholds)
        except Exception as exc:
            logger.warning("Change impact analysis failed, falling back to full rebuild: %s", exc)
            return self._log(UpdateDecision(FULL, reason=f"impact analysis failed: {exc}", current_hash=current))

        return self._log(UpdateDecision(kind, impact=impact, reason=reason, current_hash=current))

    def commit(self, decision: UpdateDecision, artifact: Optional[str] = None) -> Optional[CacheMetadata]:
        """Store *artifact* (if given) and advance metadata past *decision*.

        A full rebuild also becomes the new baseline artifact.
        """
        if decision.kind == NO_OP:
            return None
        current = decision.current_hash or self._current_hash()
        if artifact is not None:
            self.store.save_artifact(with_hash_trailer(artifact, current), baseline=decision.kind == FULL)
        return self.store.record_update(decision, current)

    @staticmethod
    def _log(decision: UpdateDecision) -> UpdateDecision:
        logger.info("Cache decision: %s (%s)", decision.kind, decision.reason)
        return decision
