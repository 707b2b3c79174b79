"""Walk a project tree and build the in-memory :class:`FileIndex`.

Only the first :data:`~docgraph.config.HEADER_BYTES` of each file are read;
imports near the top of a file are what the graph needs. Reads run in
fixed-size batches on a thread pool and every batch is joined before the
index is returned, so later stages always see a complete, immutable index.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from . import config
from .extractors import LANGUAGE_MAP, ExtractorRegistry, default_registry, is_source_extension
from .models import FileIndex, FileRecord

logger = logging.getLogger(__name__)

IGNORED_DIRS = {
    "node_modules", "vendor", "bower_components", ".git",
    "dist", "build", "out", ".next", "__pycache__",
    "venv", ".venv", "coverage", ".nyc_output",
    ".idea", ".vscode", ".cache", "tmp", "temp",
    ".pytest_cache", ".mypy_cache", ".tox",
}

IGNORED_FILE_PATTERNS: Tuple[str, ...] = (
    "*.pyc", ".DS_Store", "*.log", "*.lock", "package-lock.json",
    "*.min.js", "*.min.css", "*.map", ".env*", "*.sqlite", "*.db",
)

BINARY_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".webp",
    ".pdf", ".zip", ".tar", ".gz", ".7z", ".rar",
    ".exe", ".dll", ".so", ".dylib",
    ".mp3", ".mp4", ".avi", ".mov", ".wmv",
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
    ".sqlite", ".db", ".dat",
}


@dataclass
class FocusArea:
    dirs: Tuple[str, ...]
    suffixes: Tuple[str, ...]
    keywords: Tuple[str, ...]


FOCUS_AREAS: Dict[str, FocusArea] = {
    "frontend": FocusArea(
        dirs=("components", "pages", "views", "layouts", "ui", "client", "app"),
        suffixes=(".jsx", ".tsx", ".vue", ".svelte", ".css", ".scss", ".less", ".styled.js"),
        keywords=("component", "view", "page", "layout", "ui", "style", "theme"),
    ),
    "api": FocusArea(
        dirs=("api", "routes", "controllers", "middleware", "server", "endpoints", "handlers", "services"),
        suffixes=(),
        keywords=("route", "controller", "endpoint", "handler", "middleware", "api", "rest", "graphql"),
    ),
    "database": FocusArea(
        dirs=("models", "schemas", "migrations", "db", "database", "entities", "repositories"),
        suffixes=(".sql", ".prisma"),
        keywords=("model", "schema", "migration", "entity", "repository", "database", "table", "query"),
    ),
    "testing": FocusArea(
        dirs=("test", "tests", "__tests__", "spec", "e2e", "integration", "unit"),
        suffixes=(".test.js", ".spec.js", ".test.ts", ".spec.ts", ".test.jsx", ".test.tsx", "_test.go", "_test.py"),
        keywords=("test", "spec", "mock", "stub"),
    ),
    "deployment": FocusArea(
        dirs=("deploy", "deployment", "workflows", "ci", "cd", "docker", "k8s", "kubernetes", "terraform", "ansible"),
        suffixes=(".yml", ".yaml", "Dockerfile", ".dockerignore", ".tf", ".tfvars", "Jenkinsfile"),
        keywords=("deploy", "pipeline", "workflow", "container", "infrastructure"),
    ),
    "tooling": FocusArea(
        dirs=("scripts", "tools", "bin", "utils"),
        suffixes=(".config.js", ".config.ts", ".eslintrc", ".prettierrc", "Makefile"),
        keywords=("config", "build", "bundle", "lint", "format", "compile", "script"),
    ),
    "documentation": FocusArea(
        dirs=("docs", "documentation", "wiki", "guides", "tutorials", "examples"),
        suffixes=(".md", ".mdx", ".rst", ".txt", ".adoc"),
        keywords=("readme", "guide", "tutorial", "example", "documentation", "usage"),
    ),
}


@dataclass
class FileEntry:
    """One enumerated path: ``(path, is_dir, extension, size, mtime)``."""
    path: str
    is_dir: bool
    extension: str
    size: int
    mtime: float


def matches_focus(rel_path: str, focus: Optional[str]) -> bool:
    area = FOCUS_AREAS.get(focus or "")
    if area is None:
        return True
    name = rel_path.rsplit("/", 1)[-1]
    if any(name.endswith(suffix) for suffix in area.suffixes):
        return True
    if set(rel_path.split("/")[:-1]) & set(area.dirs):
        return True
    lowered = name.lower()
    return any(keyword in lowered for keyword in area.keywords)


# ===================================================================
# Enumeration
# ===================================================================

def enumerate_files(
    root: Path,
    max_depth: int = config.DEFAULT_MAX_DEPTH,
    include_patterns: Optional[Sequence[str]] = None,
    exclude_patterns: Sequence[str] = IGNORED_FILE_PATTERNS,
    focus: Optional[str] = None,
) -> Iterator[FileEntry]:
    """Yield directories and files under *root* in sorted, depth-first order.

    Ignored directories, ignored name patterns and binary extensions are
    filtered here so downstream code never sees them.
    The root is depth 0 and a directory at depth ``max_depth`` or deeper is
    not entered, so files nested in ``max_depth`` directories are skipped.
    """
    root = Path(root)
    skip_dirs = IGNORED_DIRS | {config.CACHE_DIR_NAME}
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        depth = 0 if rel_dir == "." else rel_dir.count("/") + 1
        dirnames[:] = sorted(d for d in dirnames if d not in skip_dirs)
        if depth >= max_depth:
            dirnames[:] = []
            continue

        for name in dirnames:
            rel = name if rel_dir == "." else f"{rel_dir}/{name}"
            yield FileEntry(path=rel, is_dir=True, extension="", size=0, mtime=0.0)

        for name in sorted(filenames):
            rel = name if rel_dir == "." else f"{rel_dir}/{name}"
            ext = os.path.splitext(name)[1].lower()
            if ext in BINARY_EXTENSIONS:
                continue
            if any(fnmatch.fnmatch(name, p) or fnmatch.fnmatch(rel, p) for p in exclude_patterns):
                continue
            if include_patterns and not any(fnmatch.fnmatch(rel, p) for p in include_patterns):
                continue
            if not matches_focus(rel, focus):
                continue
            try:
                stat = (root / rel).stat()
            except OSError as exc:
                logger.debug("Cannot stat %s: %s", rel, exc)
                continue
            yield FileEntry(path=rel, is_dir=False, extension=ext, size=stat.st_size, mtime=stat.st_mtime)


# ===================================================================
# Per-run analysis cache
# ===================================================================

class AnalysisCache:
    """File analyses reused within one run, invalidated by size or mtime change."""

    def __init__(self) -> None:
        self._records: Dict[str, FileRecord] = {}
        self._lock = threading.Lock()
        self.hits = 0

    def get(self, path: str, size: int, mtime: float) -> Optional[FileRecord]:
        with self._lock:
            record = self._records.get(path)
            if record is None or record.size != size or record.mtime != mtime:
                return None
            self.hits += 1
            return record

    def put(self, record: FileRecord) -> None:
        with self._lock:
            self._records[record.path] = record

    def __len__(self) -> int:
        return len(self._records)


# ===================================================================
# Indexer
# ===================================================================

class ProjectIndexer:
    """Builds a :class:`FileIndex` for one project directory."""

    def __init__(
        self,
        root: Path,
        registry: Optional[ExtractorRegistry] = None,
        cache: Optional[AnalysisCache] = None,
        max_depth: int = config.DEFAULT_MAX_DEPTH,
        include_patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
        focus: Optional[str] = None,
        batch_size: int = config.READ_BATCH_SIZE,
        header_bytes: int = config.HEADER_BYTES,
        max_file_size: int = config.MAX_FILE_SIZE,
    ) -> None:
        if focus is not None and focus not in FOCUS_AREAS:
            raise ValueError(f"Unknown focus area: {focus!r} (choose from {', '.join(FOCUS_AREAS)})")
        self.root = Path(root)
        self.registry = registry or default_registry()
        self.cache = cache if cache is not None else AnalysisCache()
        self.max_depth = max_depth
        self.include_patterns = include_patterns
        self.exclude_patterns = exclude_patterns if exclude_patterns is not None else IGNORED_FILE_PATTERNS
        self.focus = focus
        self.batch_size = max(1, batch_size)
        self.header_bytes = header_bytes
        self.max_file_size = max_file_size

    def read_header(self, rel_path: str) -> str:
        with open(self.root / rel_path, "rb") as f:
            return f.read(self.header_bytes).decode("utf-8", errors="ignore")

    def analyze_entry(self, entry: FileEntry) -> Optional[FileRecord]:
        cached = self.cache.get(entry.path, entry.size, entry.mtime)
        if cached is not None:
            return cached
        imports: List[str] = []
        exports: List[str] = []
        if is_source_extension(entry.extension):
            try:
                content = self.read_header(entry.path)
            except OSError as exc:
                logger.debug("Error reading %s: %s", entry.path, exc)
                return None
            imports, exports = self.registry.extract(content, entry.extension)
        record = FileRecord(
            path=entry.path,
            extension=entry.extension,
            size=entry.size,
            mtime=entry.mtime,
            imports=tuple(imports),
            exports=tuple(exports),
        )
        self.cache.put(record)
        return record

    def index(self) -> FileIndex:
        entries = [
            e for e in enumerate_files(
                self.root,
                max_depth=self.max_depth,
                include_patterns=self.include_patterns,
                exclude_patterns=self.exclude_patterns,
                focus=self.focus,
            )
            if not e.is_dir and e.size <= self.max_file_size
        ]

        file_index = FileIndex()
        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for start in range(0, len(entries), self.batch_size):
                batch = entries[start:start + self.batch_size]
                # map() keeps enumeration order and joins the whole batch
                for record in pool.map(self.analyze_entry, batch):
                    if record is not None:
                        file_index.add(record)

        seen = []
        for record in file_index:
            tech = LANGUAGE_MAP.get(record.extension)
            if tech and tech not in seen:
                seen.append(tech)
        file_index.tech_stack = seen

        logger.info(
            "Indexed %d files (%d bytes) under %s, %d cache hits",
            len(file_index), file_index.total_size, self.root, self.cache.hits,
        )
        return file_index
