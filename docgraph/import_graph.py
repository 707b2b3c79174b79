"""Resolve raw import specifiers into a file-level dependency graph.

Resolution is a pure lookup against the already-built :class:`FileIndex`;
nothing here touches the filesystem. Paths in the index are project-relative
POSIX paths, so a specifier starting with ``/`` is anchored at the project
root and one starting with ``.`` at the importing file's directory.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Callable, Container, List, Optional, Sequence

from .extractors import is_source_extension
from .models import FileIndex, ImportGraph

logger = logging.getLogger(__name__)

CANDIDATE_EXTENSIONS: Sequence[str] = (".js", ".jsx", ".ts", ".tsx", ".json", ".mjs", ".cjs", ".py")
INDEX_NAMES: Sequence[str] = ("index", "__init__")

# (from_path, raw_import, known_paths) -> resolved path or None
ResolutionStrategy = Callable[[str, str, Container[str]], Optional[str]]


def is_relative_import(raw_import: object) -> bool:
    """Only ``.``/``/`` specifiers are resolved; bare names are external packages."""
    return isinstance(raw_import, str) and raw_import.startswith((".", "/"))


def target_path(from_path: str, raw_import: str) -> Optional[str]:
    """Apply relative path algebra; ``None`` when the result leaves the project."""
    if raw_import.startswith("/"):
        joined = raw_import.lstrip("/")
    else:
        joined = posixpath.join(posixpath.dirname(from_path), raw_import)
    if not joined:
        return None
    normalized = posixpath.normpath(joined)
    if normalized == ".." or normalized.startswith("../"):
        return None
    return normalized


# ===================================================================
# Resolution strategies (evaluated in order, first hit wins)
# ===================================================================

def resolve_exact(from_path: str, raw_import: str, known: Container[str]) -> Optional[str]:
    target = target_path(from_path, raw_import)
    if target is not None and target in known:
        return target
    return None


def resolve_with_extension(from_path: str, raw_import: str, known: Container[str]) -> Optional[str]:
    target = target_path(from_path, raw_import)
    if target is None:
        return None
    for ext in CANDIDATE_EXTENSIONS:
        candidate = target + ext
        if candidate in known:
            return candidate
    return None


def resolve_index_file(from_path: str, raw_import: str, known: Container[str]) -> Optional[str]:
    target = target_path(from_path, raw_import)
    if target is None:
        return None
    base = "" if target == "." else target + "/"
    for name in INDEX_NAMES:
        for ext in CANDIDATE_EXTENSIONS:
            candidate = f"{base}{name}{ext}"
            if candidate in known:
                return candidate
    return None


DEFAULT_STRATEGIES: Sequence[ResolutionStrategy] = (
    resolve_exact,
    resolve_with_extension,
    resolve_index_file,
)


# ===================================================================
# Builder
# ===================================================================

class ImportGraphBuilder:
    """Turns a populated :class:`FileIndex` into an :class:`ImportGraph`.

    Every source file becomes a node, including files with no resolved
    imports. A resolved target that is not itself a source file (a ``.json``
    module, say) is added to the graph as the edge endpoint. Unresolvable and
    malformed specifiers are dropped; ``build`` never raises for bad input.
    """

    def __init__(self, strategies: Optional[Sequence[ResolutionStrategy]] = None) -> None:
        self.strategies: List[ResolutionStrategy] = list(strategies or DEFAULT_STRATEGIES)

    def resolve(self, from_path: str, raw_import: object, known: Container[str]) -> Optional[str]:
        if not is_relative_import(raw_import):
            return None
        for strategy in self.strategies:
            resolved = strategy(from_path, raw_import, known)  # type: ignore[arg-type]
            if resolved is not None:
                return resolved
        return None

    def build(self, file_index: FileIndex) -> ImportGraph:
        graph = ImportGraph()
        sources = [r for r in file_index if is_source_extension(r.extension)]
        for record in sources:
            graph.add_node(record.path)

        misses = 0
        for record in sources:
            for raw in record.imports:
                resolved = self.resolve(record.path, raw, file_index)
                if resolved is None:
                    if is_relative_import(raw):
                        misses += 1
                        logger.debug("Unresolved import %r in %s", raw, record.path)
                    continue
                graph.add_edge(record.path, resolved)

        logger.info(
            "Import graph: %d nodes, %d edges (%d unresolved relative imports)",
            len(graph), graph.edge_count, misses,
        )
        return graph
