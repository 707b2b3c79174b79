"""Core data models shared by indexing, graph scoring, impact analysis and caching."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Optional, Tuple

DecisionKind = Literal["no_op", "micro", "partial", "full"]

NO_OP: DecisionKind = "no_op"
MICRO: DecisionKind = "micro"
PARTIAL: DecisionKind = "partial"
FULL: DecisionKind = "full"

DECISION_KINDS: Tuple[DecisionKind, ...] = (NO_OP, MICRO, PARTIAL, FULL)


# ===================================================================
# File index
# ===================================================================

@dataclass
class FileRecord:
    """One analyzed file. Created once during indexing, never mutated."""
    path: str
    extension: str
    size: int
    mtime: float
    imports: Tuple[str, ...] = ()
    exports: Tuple[str, ...] = ()


@dataclass
class FileIndex:
    """Ordered table of analyzed files keyed by project-relative path."""
    records: Dict[str, FileRecord] = field(default_factory=dict)
    tech_stack: List[str] = field(default_factory=list)

    def add(self, record: FileRecord) -> None:
        self.records[record.path] = record

    def get(self, path: str) -> Optional[FileRecord]:
        return self.records.get(path)

    def paths(self) -> List[str]:
        return list(self.records)

    @property
    def total_size(self) -> int:
        return sum(r.size for r in self.records.values())

    def __contains__(self, path: object) -> bool:
        return path in self.records

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self.records.values())

    def __len__(self) -> int:
        return len(self.records)


# ===================================================================
# Import graph
# ===================================================================

@dataclass
class ImportGraph:
    """Directed file graph: ``forward`` = imports, ``reverse`` = imported by.

    Edges are de-duplicated. Self-loops and cycles are allowed. Nodes are
    not limited to source files: a resolved import of a non-source file
    (``.json`` data, say) makes that file an edge endpoint and so a node.
    """
    nodes: List[str] = field(default_factory=list)
    forward: Dict[str, List[str]] = field(default_factory=dict)
    reverse: Dict[str, List[str]] = field(default_factory=dict)

    def add_node(self, path: str) -> None:
        if path in self.forward:
            return
        self.nodes.append(path)
        self.forward[path] = []
        self.reverse[path] = []

    def add_edge(self, src: str, dst: str) -> bool:
        """Add ``src -> dst``; returns False when the edge already exists."""
        self.add_node(src)
        self.add_node(dst)
        if dst in self.forward[src]:
            return False
        self.forward[src].append(dst)
        self.reverse[dst].append(src)
        return True

    def imports(self, path: str) -> List[str]:
        return list(self.forward.get(path, []))

    def imported_by(self, path: str) -> List[str]:
        return list(self.reverse.get(path, []))

    def in_degree(self, path: str) -> int:
        return len(self.reverse.get(path, []))

    def fan_in(self, path: str) -> int:
        """Number of *other* files importing *path*."""
        return sum(1 for src in self.reverse.get(path, []) if src != path)

    def out_degree(self, path: str) -> int:
        return len(self.forward.get(path, []))

    def edges(self) -> Iterator[Tuple[str, str]]:
        for src in self.nodes:
            for dst in self.forward[src]:
                yield src, dst

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.forward.values())

    def __contains__(self, path: object) -> bool:
        return path in self.forward

    def __len__(self) -> int:
        return len(self.nodes)


# ===================================================================
# Change impact
# ===================================================================

@dataclass
class FileChange:
    """Line delta for one touched file."""
    path: str
    added: int = 0
    deleted: int = 0

    @property
    def lines(self) -> int:
        return self.added + self.deleted

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "added": self.added, "deleted": self.deleted, "lines": self.lines}


@dataclass
class ChangeImpact:
    """Summary of what changed between two revisions.

    ``available`` is False when no trustworthy history signal could be read;
    such an impact carries zero counts and all flags cleared.
    """
    files: List[FileChange] = field(default_factory=list)
    file_count: int = 0
    total_lines: int = 0
    max_lines_in_one_file: int = 0
    module_count: int = 0
    has_api_changes: bool = False
    has_dep_changes: bool = False
    has_config_changes: bool = False
    has_multiple_modules: bool = False
    available: bool = True

    @classmethod
    def unavailable(cls) -> "ChangeImpact":
        return cls(available=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_count": self.file_count,
            "total_lines": self.total_lines,
            "max_lines_in_one_file": self.max_lines_in_one_file,
            "module_count": self.module_count,
            "has_api_changes": self.has_api_changes,
            "has_dep_changes": self.has_dep_changes,
            "has_config_changes": self.has_config_changes,
            "has_multiple_modules": self.has_multiple_modules,
            "available": self.available,
            "files": [f.to_dict() for f in self.files],
        }


@dataclass
class UpdateDecision:
    """Result of one invalidation check."""
    kind: DecisionKind
    impact: Optional[ChangeImpact] = None
    reason: str = ""
    current_hash: Optional[str] = None

    @property
    def regenerate(self) -> bool:
        return self.kind != NO_OP

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind, "reason": self.reason}
        if self.current_hash:
            payload["current_hash"] = self.current_hash
        if self.impact is not None:
            payload["impact"] = self.impact.to_dict()
        return payload


# ===================================================================
# Cache metadata
# ===================================================================

@dataclass
class UpdateRecord:
    timestamp: str
    kind: DecisionKind
    from_hash: Optional[str] = None
    to_hash: Optional[str] = None
    file_count: int = 0
    total_lines: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "kind": self.kind,
            "from_hash": self.from_hash,
            "to_hash": self.to_hash,
            "file_count": self.file_count,
            "total_lines": self.total_lines,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "UpdateRecord":
        kind = payload["kind"]
        if kind not in DECISION_KINDS:
            raise ValueError(f"unknown update kind: {kind!r}")
        return cls(
            timestamp=str(payload["timestamp"]),
            kind=kind,
            from_hash=payload.get("from_hash"),
            to_hash=payload.get("to_hash"),
            file_count=int(payload.get("file_count", 0)),
            total_lines=int(payload.get("total_lines", 0)),
        )


@dataclass
class CacheMetadata:
    """Persisted cache bookkeeping (the ``metadata`` key)."""
    version: str
    created: str
    last_update: str
    last_full_analysis: Optional[str] = None
    last_git_hash: Optional[str] = None
    update_history: List[UpdateRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "created": self.created,
            "last_update": self.last_update,
            "last_full_analysis": self.last_full_analysis,
            "last_git_hash": self.last_git_hash,
            "update_history": [r.to_dict() for r in self.update_history],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CacheMetadata":
        """Build metadata from decoded JSON.

        Raises:
            ValueError, KeyError, TypeError: if *payload* does not match the schema.
        """
        if not isinstance(payload, dict):
            raise TypeError("metadata must be a JSON object")
        history = payload.get("update_history") or []
        if not isinstance(history, list):
            raise TypeError("update_history must be a list")
        return cls(
            version=str(payload["version"]),
            created=str(payload["created"]),
            last_update=str(payload["last_update"]),
            last_full_analysis=payload.get("last_full_analysis"),
            last_git_hash=payload.get("last_git_hash"),
            update_history=[UpdateRecord.from_dict(r) for r in history],
        )


# ===================================================================
# Ranking
# ===================================================================

@dataclass
class RankedFile:
    """A smart-file-selection result row."""
    path: str
    score: float
    content_preview: str = ""
    truncated: bool = False
    total_lines: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "score": self.score,
            "content_preview": self.content_preview,
            "truncated": self.truncated,
            "total_lines": self.total_lines,
        }
